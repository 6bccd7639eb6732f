"""
Test gradient descent fitting.

Noise-free data has a zero-loss optimum at the generating coefficients,
so each link should recover them.
"""

import logging
import pytest
import numpy as np
from scipy.special import expit

from linkregression import (
    CoefficientSolver,
    Identity,
    Log,
    Logistic,
    Observations,
    SolverConfig,
    fit_coefficients,
)
from linkregression.exceptions import (
    ConvergenceError,
    DimensionError,
    NonConvergenceWarning,
    ValidationError,
)


@pytest.fixture
def line_observations():
    """y = 1 + 2x on x = 0..3."""
    return Observations([[1, 0], [1, 1], [1, 2], [1, 3]], [1, 3, 5, 7])


class TestSolverConfig:
    """Test configuration validation."""
    
    def test_defaults(self):
        cfg = SolverConfig()
        assert cfg.learning_rate == 0.01
        assert cfg.batch_size is None
        assert cfg.schedule == 'fixed'
    
    @pytest.mark.parametrize("kwargs", [
        {'learning_rate': 0.0},
        {'learning_rate': -1.0},
        {'tolerance': -1e-3},
        {'max_iterations': 0},
        {'loss_epsilon': -1.0},
        {'aggregate': 'median'},
        {'batch_size': 0},
        {'schedule': 'rmsprop'},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValidationError):
            SolverConfig(**kwargs)


class TestBatchDescent:
    """Test full-batch gradient descent per link."""
    
    def test_identity_recovers_line(self, line_observations):
        """Exact least-squares solution [1, 2]."""
        cfg = SolverConfig(learning_rate=0.1, tolerance=1e-10, max_iterations=20000)
        result = fit_coefficients(line_observations, Identity(), config=cfg)
        
        assert result.converged
        assert result.gradient_norm < 1e-10
        np.testing.assert_allclose(result.coefficients, [1.0, 2.0], atol=1e-8)
        assert result.loss < 1e-15
    
    def test_identity_matches_least_squares(self):
        """On noisy data the optimum is the OLS solution."""
        rng = np.random.default_rng(42)
        x = rng.uniform(-1, 1, size=(50, 2))
        X = np.column_stack([np.ones(50), x])
        y = X @ np.array([0.5, 1.0, -2.0]) + 0.1 * rng.standard_normal(50)
        
        cfg = SolverConfig(learning_rate=0.2, tolerance=1e-10, max_iterations=50000)
        result = fit_coefficients(Observations(X, y), Identity(), config=cfg)
        
        ols = np.linalg.lstsq(X, y, rcond=None)[0]
        assert result.converged
        np.testing.assert_allclose(result.coefficients, ols, atol=1e-7)
    
    def test_logistic(self):
        """Probabilities generated by the logistic curve."""
        x = np.linspace(-2, 2, 20)
        obs = Observations.from_features(x, expit(0.5 + 1.5 * x))
        
        cfg = SolverConfig(learning_rate=2.0, tolerance=1e-9, max_iterations=100000)
        result = fit_coefficients(obs, Logistic(), config=cfg)
        
        assert result.converged
        np.testing.assert_allclose(result.coefficients, [0.5, 1.5], atol=1e-4)
    
    def test_log(self):
        """Outcomes generated by exp(0.2 + 0.5x)."""
        x = np.linspace(0, 2, 15)
        obs = Observations.from_features(x, np.exp(0.2 + 0.5 * x))
        
        cfg = SolverConfig(learning_rate=0.02, tolerance=1e-9, max_iterations=100000)
        result = fit_coefficients(obs, Log(), config=cfg)
        
        assert result.converged
        np.testing.assert_allclose(result.coefficients, [0.2, 0.5], atol=1e-5)
    
    def test_sum_aggregate(self, line_observations):
        """Summed gradients need a smaller step but reach the same optimum."""
        cfg = SolverConfig(learning_rate=0.02, tolerance=1e-10,
                           max_iterations=50000, aggregate='sum')
        result = fit_coefficients(line_observations, Identity(), config=cfg)
        np.testing.assert_allclose(result.coefficients, [1.0, 2.0], atol=1e-8)
    
    def test_adagrad(self, line_observations):
        cfg = SolverConfig(learning_rate=0.5, tolerance=1e-8,
                           max_iterations=100000, schedule='adagrad')
        result = fit_coefficients(line_observations, Identity(), config=cfg)
        assert result.converged
        np.testing.assert_allclose(result.coefficients, [1.0, 2.0], atol=1e-6)
    
    def test_loss_epsilon_stops_early(self, line_observations):
        """Loss improvement criterion stops before the gradient criterion would."""
        cfg = SolverConfig(learning_rate=0.1, tolerance=0.0,
                           max_iterations=100000, loss_epsilon=1e-6)
        result = fit_coefficients(line_observations, Identity(), config=cfg)
        assert result.converged
        assert result.iterations < 100000
        np.testing.assert_allclose(result.coefficients, [1.0, 2.0], atol=1e-2)
    
    def test_already_at_optimum(self, line_observations):
        """Zero iterations when the initial guess has zero gradient."""
        result = fit_coefficients(line_observations, Identity(), initial=[1.0, 2.0])
        assert result.converged
        assert result.iterations == 0
        np.testing.assert_array_equal(result.coefficients, [1.0, 2.0])


class TestSolverState:
    """Test ownership of the coefficient vector."""
    
    def test_initial_not_mutated(self, line_observations):
        initial = np.array([0.5, 0.5])
        fit_coefficients(line_observations, Identity(), initial=initial,
                         config=SolverConfig(learning_rate=0.1, tolerance=1e-6))
        np.testing.assert_array_equal(initial, [0.5, 0.5])
    
    def test_result_read_only(self, line_observations):
        result = fit_coefficients(line_observations, Identity(),
                                  config=SolverConfig(learning_rate=0.1, tolerance=1e-6))
        with pytest.raises(ValueError):
            result.coefficients[0] = 0.0
    
    def test_initial_length(self, line_observations):
        with pytest.raises(DimensionError):
            fit_coefficients(line_observations, Identity(), initial=[0.0, 0.0, 0.0])
    
    def test_deterministic(self, line_observations):
        cfg = SolverConfig(learning_rate=0.1, tolerance=1e-8)
        a = fit_coefficients(line_observations, Identity(), config=cfg)
        b = fit_coefficients(line_observations, Identity(), config=cfg)
        np.testing.assert_array_equal(a.coefficients, b.coefficients)
        assert a.iterations == b.iterations


class TestMiniBatch:
    """Test mini-batch and stochastic descent."""
    
    def test_seeded_reproducibility(self, line_observations):
        """Same seed, same path."""
        cfg = SolverConfig(learning_rate=0.05, tolerance=0.0, max_iterations=200,
                           batch_size=2, seed=123)
        with pytest.warns(NonConvergenceWarning):
            a = fit_coefficients(line_observations, Identity(), config=cfg)
        with pytest.warns(NonConvergenceWarning):
            b = fit_coefficients(line_observations, Identity(), config=cfg)
        np.testing.assert_array_equal(a.coefficients, b.coefficients)
    
    def test_seed_changes_path(self, line_observations):
        results = []
        for seed in (1, 2):
            cfg = SolverConfig(learning_rate=0.05, tolerance=0.0, max_iterations=25,
                               batch_size=1, seed=seed)
            with pytest.warns(NonConvergenceWarning):
                results.append(fit_coefficients(line_observations, Identity(), config=cfg))
        assert not np.array_equal(results[0].coefficients, results[1].coefficients)
    
    def test_stochastic_approaches_solution(self, line_observations):
        """Noise-free data: every single-row gradient vanishes at the optimum."""
        cfg = SolverConfig(learning_rate=0.05, tolerance=1e-9, max_iterations=200000,
                           batch_size=1, seed=0)
        result = CoefficientSolver(Identity(), cfg).fit(line_observations)
        full = Identity().loss_gradient(result.coefficients,
                                        line_observations.get_independents(),
                                        line_observations.get_dependents())
        assert result.converged
        assert result.gradient_norm < 1e-9
        np.testing.assert_allclose(result.gradient_norm, np.linalg.norm(full))
        np.testing.assert_allclose(result.coefficients, [1.0, 2.0], atol=1e-6)
    
    def test_quiet_batch_is_not_convergence(self):
        """Rows already on the current line give a zero batch gradient."""
        # Rows 0-2 lie on 1 + 2x; row 3 does not, so [1, 2] is not the optimum
        obs = Observations([[1, 0], [1, 1], [1, 2], [1, 3]], [1, 3, 5, 8])
        cfg = SolverConfig(learning_rate=0.01, tolerance=1e-9, max_iterations=50,
                           batch_size=1, seed=0)
        with pytest.warns(NonConvergenceWarning):
            result = fit_coefficients(obs, Identity(), initial=[1.0, 2.0], config=cfg)
        full = Identity().loss_gradient(result.coefficients,
                                        obs.get_independents(), obs.get_dependents())
        assert not result.converged
        assert result.iterations == 50
        np.testing.assert_allclose(result.gradient_norm, np.linalg.norm(full))
        assert result.gradient_norm > 1e-9
    
    def test_batch_larger_than_data(self, line_observations):
        """Batch size is capped at n."""
        cfg = SolverConfig(learning_rate=0.1, tolerance=1e-10, max_iterations=20000,
                           batch_size=100)
        result = fit_coefficients(line_observations, Identity(), config=cfg)
        np.testing.assert_allclose(result.coefficients, [1.0, 2.0], atol=1e-8)


class TestNonConvergence:
    """Test reporting of iteration cap and divergence."""
    
    def test_warns_at_cap(self, line_observations):
        cfg = SolverConfig(learning_rate=0.001, tolerance=1e-12, max_iterations=5)
        with pytest.warns(NonConvergenceWarning, match="did not converge"):
            result = fit_coefficients(line_observations, Identity(), config=cfg)
        assert not result.converged
        assert result.iterations == 5
    
    def test_raises_at_cap(self, line_observations):
        cfg = SolverConfig(learning_rate=0.001, tolerance=1e-12, max_iterations=5,
                           raise_on_nonconvergence=True)
        with pytest.raises(ConvergenceError) as excinfo:
            fit_coefficients(line_observations, Identity(), config=cfg)
        assert excinfo.value.reason == 'max_iterations'
        assert excinfo.value.iterations == 5
        assert excinfo.value.threshold == 1e-12
    
    def test_diverging_learning_rate(self, line_observations):
        """A step far beyond 2/curvature overflows and is reported."""
        cfg = SolverConfig(learning_rate=10.0, tolerance=1e-8, max_iterations=10000)
        with np.errstate(over='ignore', invalid='ignore'):
            with pytest.raises(ConvergenceError) as excinfo:
                fit_coefficients(line_observations, Identity(), config=cfg)
        assert excinfo.value.reason == 'diverging'


class TestLogging:
    """Test optional progress logging."""
    
    def test_debug_records(self, line_observations, caplog):
        cfg = SolverConfig(learning_rate=0.1, tolerance=1e-6, verbose=True)
        with caplog.at_level(logging.DEBUG, logger='linkregression._core.solver'):
            fit_coefficients(line_observations, Identity(), config=cfg)
        assert any('iteration' in r.getMessage() for r in caplog.records)
        assert any('finished' in r.getMessage() for r in caplog.records)
    
    def test_silent_by_default(self, line_observations, caplog):
        cfg = SolverConfig(learning_rate=0.1, tolerance=1e-6)
        with caplog.at_level(logging.DEBUG, logger='linkregression._core.solver'):
            fit_coefficients(line_observations, Identity(), config=cfg)
        assert not caplog.records

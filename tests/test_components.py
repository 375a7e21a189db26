"""Tests for spatialabc.components and spatialabc.sampling_control."""

import os

import numpy as np
import pytest

from spatialabc.components import (
    DataModel,
    DistanceModel,
    ExposureModel,
    InitialValueContainer,
    ReinfectionModel,
    TransitionPriors,
)
from spatialabc.errors import ComponentInUseError, CoreCountWarning, ModelConfigurationError
from spatialabc.sampling_control import ALG_DEL_MORAL_2012, SamplingControl


# ═══════════════════════════════════════════════════════════════════════
# SUB-MODEL CONTAINERS
# ═══════════════════════════════════════════════════════════════════════

class TestDataModel:

    def test_mask_defaults_to_nan_cells(self):
        Y = np.array([[1.0, np.nan], [2.0, 3.0]])
        data = DataModel(Y=Y)
        assert data.na_mask.tolist() == [[False, True], [False, False]]
        assert (data.n_tpt, data.n_loc) == (2, 2)

    def test_vector_becomes_single_location(self):
        data = DataModel(Y=[1, 2, 3])
        assert data.Y.shape == (3, 1)

    def test_rejects_unknown_compartment(self):
        with pytest.raises(ModelConfigurationError):
            DataModel(Y=np.ones((3, 1)), compartment="Q_star")

    def test_rejects_mask_shape_mismatch(self):
        with pytest.raises(ModelConfigurationError):
            DataModel(Y=np.ones((3, 2)), na_mask=np.zeros((3, 1), dtype=bool))

    def test_rejects_negative_phi(self):
        with pytest.raises(ModelConfigurationError):
            DataModel(Y=np.ones((3, 1)), phi=-1.0)


class TestExposureModel:

    def test_defaults(self):
        exposure = ExposureModel(X=np.ones((6, 2)), n_tpt=3, n_loc=2)
        assert exposure.offset.tolist() == [1.0, 1.0, 1.0]
        assert exposure.beta_prior_mean.tolist() == [0.0, 0.0]
        assert exposure.beta_prior_precision.tolist() == [1.0, 1.0]
        assert exposure.n_beta == 2

    def test_rows_must_cover_time_and_location(self):
        with pytest.raises(ModelConfigurationError):
            ExposureModel(X=np.ones((5, 2)), n_tpt=3, n_loc=2)

    def test_precision_must_be_positive(self):
        with pytest.raises(ModelConfigurationError):
            ExposureModel(X=np.ones((3, 1)), n_tpt=3, n_loc=1, beta_prior_precision=[0.0])


class TestReinfectionModel:

    def test_default_is_no_reinfection(self):
        reinf = ReinfectionModel()
        assert not reinf.has_reinfection
        assert reinf.X_rs.shape == (0, 0)

    def test_active_when_first_precision_positive(self):
        reinf = ReinfectionModel(mode="SEIRS", X_rs=np.ones((4, 2)),
                                 beta_prior_mean=[0, 0], beta_prior_precision=[1, 1])
        assert reinf.has_reinfection
        assert reinf.n_tpt == 4

    def test_zero_precision_switches_off(self):
        reinf = ReinfectionModel(mode="SEIRS", X_rs=np.ones((4, 2)),
                                 beta_prior_mean=[0, 0], beta_prior_precision=[0, 1])
        assert not reinf.has_reinfection

    def test_seir_mode_with_zero_precision(self):
        reinf = ReinfectionModel(mode="SEIR", X_rs=np.ones((4, 1)), beta_prior_precision=[0.0])
        assert not reinf.has_reinfection

    def test_seir_mode_rejects_positive_precision(self):
        with pytest.raises(ModelConfigurationError, match="SEIR"):
            ReinfectionModel(mode="SEIR", X_rs=np.ones((4, 1)), beta_prior_precision=[5.0])

    def test_active_mode_requires_design_matrix(self):
        with pytest.raises(ModelConfigurationError):
            ReinfectionModel(mode="SEIRS")

    def test_unknown_mode(self):
        with pytest.raises(ModelConfigurationError):
            ReinfectionModel(mode="SIRS")


class TestDistanceModel:

    def test_lag_count(self):
        d = np.eye(2)
        dist = DistanceModel(dm_list=[d], tdm_list=[[d, d], [d, d]])
        assert dist.n_loc == 2
        assert dist.n_lags == 2
        assert not dist.tdm_empty

    def test_empty_lags(self):
        dist = DistanceModel(dm_list=[np.eye(3)], tdm_list=[[], []])
        assert dist.tdm_empty

    def test_rejects_wrong_matrix_shape(self):
        with pytest.raises(ModelConfigurationError):
            DistanceModel(dm_list=[np.eye(2), np.eye(3)], tdm_list=[[]])

    def test_rejects_nonpositive_prior(self):
        with pytest.raises(ModelConfigurationError):
            DistanceModel(dm_list=[np.eye(2)], tdm_list=[[]], spatial_prior=(0.0, 1.0))


class TestTransitionPriors:

    def test_invalid_mode_is_fatal(self):
        with pytest.raises(ModelConfigurationError, match="Invalid transition mode"):
            TransitionPriors(mode="gamma", E_to_I_params=[1, 1], I_to_R_params=[1, 1])

    def test_weibull_needs_four_rows(self):
        with pytest.raises(ModelConfigurationError):
            TransitionPriors(mode="weibull", E_to_I_params=[1, 1], I_to_R_params=[1, 1, 1, 1])

    def test_column_vectors(self):
        tp = TransitionPriors(mode="exponential", E_to_I_params=[2, 10], I_to_R_params=[3, 10])
        assert tp.E_to_I_params.shape == (2, 1)
        assert tp.inf_mean == 0.0


class TestInitialValueContainer:

    def test_population(self):
        init = InitialValueContainer(S0=[90, 80], E0=[0, 5], I0=[10, 5], R0=[0, 10])
        assert init.N.tolist() == [100, 100]
        assert init.n_loc == 2

    def test_lengths_must_agree(self):
        with pytest.raises(ModelConfigurationError):
            InitialValueContainer(S0=[1, 2], E0=[0], I0=[0, 0], R0=[0, 0])

    def test_non_negative(self):
        with pytest.raises(ModelConfigurationError):
            InitialValueContainer(S0=[-1], E0=[0], I0=[0], R0=[0])


class TestReferenceGuard:

    def test_close_refused_while_retained(self):
        data = DataModel(Y=np.ones((2, 1)))
        data.retain()
        with pytest.raises(ComponentInUseError):
            data.close()
        data.release()
        data.close()

    def test_release_without_retain(self):
        with pytest.raises(ComponentInUseError):
            DataModel(Y=np.ones((2, 1))).release()


# ═══════════════════════════════════════════════════════════════════════
# SAMPLING CONTROL
# ═══════════════════════════════════════════════════════════════════════

class TestSamplingControl:

    def test_from_vectors(self):
        ctrl = SamplingControl.from_vectors([1, 42, 1, 3, 500, 2, 10, 1, 4], [0.1, 0.8, 0.5])
        assert ctrl.random_seed == 42
        assert ctrl.algorithm == ALG_DEL_MORAL_2012
        assert ctrl.batch_size == 500
        assert ctrl.multivariate_perturbation is True
        assert ctrl.m == 4
        assert ctrl.accept_fraction == pytest.approx(0.1)
        assert ctrl.target_eps == pytest.approx(0.5)

    def test_from_vectors_wrong_length(self):
        with pytest.raises(ModelConfigurationError, match="Exactly 12"):
            SamplingControl.from_vectors([1, 2, 3], [0.1, 0.2, 0.3])

    @pytest.mark.parametrize("kwargs", [
        {"algorithm": 4},
        {"algorithm": 0},
        {"max_batches": 0},
        {"batch_size": 0},
        {"cpu_cores": 0},
        {"m": 0},
        {"accept_fraction": 0.0},
        {"particle_timeout": -1.0},
    ])
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ModelConfigurationError):
            SamplingControl(**kwargs)

    def test_to_dict_and_summary(self, capsys):
        ctrl = SamplingControl(random_seed=7)
        assert ctrl.to_dict()["random_seed"] == 7
        ctrl.print_summary()
        assert "Basic ABC" in capsys.readouterr().out

    def test_oversubscribed_cores_warn(self):
        with pytest.warns(CoreCountWarning, match="cores requested"):
            ctrl = SamplingControl(cpu_cores=(os.cpu_count() or 1) + 1)
        assert ctrl.cpu_cores > 1

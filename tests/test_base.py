"""Tests for the base illness-death model"""

import logging

import numpy as np
import pytest

from msaalen.models import BaseMultiStateModel, IllnessDeathModel


def test_base_model_is_abstract(model):
    with pytest.raises(TypeError):
        BaseMultiStateModel(model.evaluators)


def test_subclass_exposes_state_structure(model):
    assert isinstance(model, BaseMultiStateModel)
    assert model.states == ["Healthy", "Relapsed", "Dead"]
    assert model.horizon == 5.0


def test_clip_and_renormalize_leaves_valid_rows():
    rows = np.array([[0.5, 0.3, 0.2], [1.0, 0.0, 0.0]])
    assert np.allclose(BaseMultiStateModel._clip_and_renormalize(rows), rows)


def test_clip_and_renormalize_negative_entries(caplog):
    rows = np.array([[1.2, -0.1, -0.1], [0.6, 0.6, -0.2]])
    with caplog.at_level(logging.DEBUG, logger="msaalen.models.base_multi_state"):
        result = BaseMultiStateModel._clip_and_renormalize(rows)
    assert np.allclose(result, [[1.0, 0.0, 0.0], [0.5, 0.5, 0.0]])
    assert "Clipped 3 negative probabilities" in caplog.text


def test_clip_and_renormalize_empty_row():
    """A row clipped to all zeros puts its mass on the absorbing state"""
    result = BaseMultiStateModel._clip_and_renormalize(np.array([[-0.1, -0.2, 0.0]]))
    assert np.allclose(result, [[0.0, 0.0, 1.0]])


def test_clip_and_renormalize_matrices():
    matrices = np.array([[[0.9, 0.2, -0.1], [0.0, 1.1, -0.1]]])
    result = BaseMultiStateModel._clip_and_renormalize(matrices)
    assert result.shape == (1, 2, 3)
    assert np.allclose(result.sum(axis=-1), 1.0)
    assert np.all(result >= 0)


def test_evaluator_keys_accept_labels(model):
    relabelled = IllnessDeathModel({str(t): e for t, e in model.evaluators.items()})
    assert np.allclose(relabelled.predict_transition_matrix([2.0]), model.predict_transition_matrix([2.0]))

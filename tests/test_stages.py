import pytest

from app.core.exceptions import InvalidTransitionError
from app.flow.stages import (
    Stage,
    STAGE_TRANSITIONS,
    STAGE_METADATA,
    RETIRED_STAGE_MAP,
    coerce_stage,
    is_valid_transition,
    display_name,
)
from app.models.user import User
from app.services import user_service


def test_every_stage_has_metadata_and_transitions():
    for stage in Stage:
        assert stage in STAGE_METADATA
        assert stage in STAGE_TRANSITIONS


def test_transition_targets_are_stages():
    for targets in STAGE_TRANSITIONS.values():
        assert all(isinstance(t, Stage) for t in targets)


@pytest.mark.parametrize("from_stage, to_stage", [
    (Stage.INITIAL, Stage.AWAITING_PHONE),
    (Stage.AWAITING_PHONE, Stage.TRIAL),
    (Stage.TRIAL, Stage.AWAITING_PHONE_FOR_PAYMENT),
    (Stage.AWAITING_PHONE_FOR_PAYMENT, Stage.AWAITING_PAYMENT),
    (Stage.AWAITING_PAYMENT, Stage.SUBSCRIBED),
    (Stage.AWAITING_PAYMENT, Stage.TRIAL),
    (Stage.SUBSCRIBED, Stage.SUBSCRIPTION_EXPIRED),
    (Stage.SUBSCRIPTION_EXPIRED, Stage.AWAITING_PHONE_FOR_PAYMENT),
])
def test_allowed_transitions(from_stage, to_stage):
    assert is_valid_transition(from_stage, to_stage)


@pytest.mark.parametrize("from_stage, to_stage", [
    (Stage.INITIAL, Stage.TRIAL),
    (Stage.INITIAL, Stage.SUBSCRIBED),
    (Stage.TRIAL, Stage.AWAITING_PAYMENT),
    (Stage.SUBSCRIPTION_EXPIRED, Stage.SUBSCRIBED),
])
def test_rejected_transitions(from_stage, to_stage):
    assert not is_valid_transition(from_stage, to_stage)


def test_transition_accepts_string_values():
    assert is_valid_transition("initial", "awaiting_phone")


@pytest.mark.parametrize("retired, expected", list(RETIRED_STAGE_MAP.items()))
def test_retired_stages_are_mapped(retired, expected):
    assert coerce_stage(retired) == expected


def test_missing_stage_defaults_to_initial():
    assert coerce_stage(None) == Stage.INITIAL


def test_unknown_stage_is_rejected():
    with pytest.raises(ValueError):
        coerce_stage("gst_filing")


def test_user_document_with_retired_stage_loads():
    user = User.from_document({"_id": "abc", "identity": "psid-1", "stage": "subscription_active"})
    assert user.stage == Stage.SUBSCRIBED.value


def test_display_name_handles_retired_values():
    assert display_name("payment_failed") == display_name(Stage.TRIAL)


def test_set_stage_validates_by_default():
    user = User(identity="psid-1")
    with pytest.raises(InvalidTransitionError):
        user_service.set_stage(user, Stage.SUBSCRIBED)
    assert user.stage == Stage.INITIAL.value


def test_set_stage_can_skip_validation():
    user = User(identity="psid-1")
    user_service.set_stage(user, Stage.SUBSCRIBED, validate_transition=False)
    assert user.stage == Stage.SUBSCRIBED.value


def test_set_stage_same_stage_is_noop():
    user = User(identity="psid-1", stage=Stage.TRIAL)
    user_service.set_stage(user, Stage.TRIAL)
    assert user.stage == Stage.TRIAL.value

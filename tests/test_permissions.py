import pytest

from coachtrend.domain.models import EffectivePermissions, Role
from coachtrend.exceptions import InvalidInput
from coachtrend.logic.permissions import resolve_effective_permissions


def test_missing_connection_grants_nothing():
    assert resolve_effective_permissions(None) == EffectivePermissions()


def test_granted_access_fields():
    conn = {
        "status": "ACTIVE",
        "trainerAccess": {"viewExerciseData": True},
        "mentalTrainerAccess": {"viewMentalData": False},
    }
    assert resolve_effective_permissions(conn) == EffectivePermissions(view_exercise_data=True)


def test_general_permissions_fallback():
    conn = {"status": "active", "permissions": {"viewExerciseData": True, "viewMentalData": True}}
    assert resolve_effective_permissions(conn) == EffectivePermissions(True, True)


def test_nested_requested_permissions():
    conn = {"status": "ACTIVE", "permissions": {"mentalTrainerAccess": {"viewMentalData": True}}}
    assert resolve_effective_permissions(conn) == EffectivePermissions(view_mental_data=True)


def test_non_boolean_values_do_not_grant():
    conn = {"status": "ACTIVE", "trainerAccess": {"viewExerciseData": "yes"}, "permissions": {"viewMentalData": 1}}
    assert resolve_effective_permissions(conn) == EffectivePermissions()


@pytest.mark.parametrize("status", ["PENDING", "REJECTED", "TERMINATED"])
def test_inactive_connections_grant_nothing(status):
    conn = {"status": status, "trainerAccess": {"viewExerciseData": True}}
    assert resolve_effective_permissions(conn) == EffectivePermissions()


def test_unknown_status_is_rejected():
    with pytest.raises(InvalidInput):
        resolve_effective_permissions({"status": "MAYBE"})


def test_role_parse():
    assert Role.parse("mental_trainer") == Role.MENTAL_TRAINER
    with pytest.raises(InvalidInput):
        Role.parse("COACH")

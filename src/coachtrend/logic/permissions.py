from typing import Any, Mapping, Optional

from coachtrend.domain.models import ConnectionStatus, EffectivePermissions


def _flag(section: Any, name: str) -> bool:
    # Only real booleans count; strings like "false" must not grant access.
    if isinstance(section, Mapping):
        value = section.get(name)
        return value if isinstance(value, bool) else False
    return False


def resolve_effective_permissions(connection: Optional[Mapping[str, Any]]) -> EffectivePermissions:
    """
    Resolves a trainer connection document into the rights it grants.

    Connection documents spread the same rights over three fields:
    `trainerAccess` / `mentalTrainerAccess` (granted by the trainer on
    activation) and `permissions` (requested by the player, either flat or
    nested per trainer type). A right is granted when any of them sets it to
    True. Only ACTIVE connections grant anything.

    Raises:
        InvalidInput: the connection status is not a known value.
    """
    if not connection:
        return EffectivePermissions()

    status = ConnectionStatus.parse(connection.get("status", ConnectionStatus.PENDING.value))
    if status != ConnectionStatus.ACTIVE:
        return EffectivePermissions()

    general = connection.get("permissions") or {}
    nested_trainer = general.get("trainerAccess") if isinstance(general, Mapping) else None
    nested_mental = general.get("mentalTrainerAccess") if isinstance(general, Mapping) else None

    exercise = (
        _flag(connection.get("trainerAccess"), "viewExerciseData")
        or _flag(nested_trainer, "viewExerciseData")
        or _flag(general, "viewExerciseData")
    )
    mental = (
        _flag(connection.get("mentalTrainerAccess"), "viewMentalData")
        or _flag(nested_mental, "viewMentalData")
        or _flag(general, "viewMentalData")
    )
    return EffectivePermissions(view_exercise_data=exercise, view_mental_data=mental)

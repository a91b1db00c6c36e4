# serenite/auth/roles.py

# Modèle de rôles : un ordre total, et un test "au moins tel rôle".

from enum import Enum


class Role(str, Enum):
    VISITOR = "VISITOR"
    ADHERENT = "ADHERENT"
    ADMIN_MEMBRE = "ADMIN_MEMBRE"
    SUPER_ADMIN = "SUPER_ADMIN"

    def __str__(self):
        return self.value


ROLE_RANK = {
    Role.VISITOR: 0,
    Role.ADHERENT: 1,
    Role.ADMIN_MEMBRE: 2,
    Role.SUPER_ADMIN: 3,
}

# Anciens noms encore renvoyés par certaines versions de l'API
ALIASES = {
    "MEMBER": Role.ADHERENT,
    "MEMBRE": Role.ADHERENT,
    "ADMIN": Role.SUPER_ADMIN,
}

ROLE_OPTIONS = [Role.VISITOR, Role.ADHERENT, Role.ADMIN_MEMBRE, Role.SUPER_ADMIN]


def parse_role(value) -> Role:
    """Résout un rôle (enum, nom courant ou ancien nom). Lève ValueError sinon."""
    if isinstance(value, Role):
        return value
    key = (value or "").strip().upper()
    if key in ALIASES:
        return ALIASES[key]
    return Role(key)


def coerce_role(value, default: Role = Role.VISITOR) -> Role:
    """Version tolérante pour les payloads : un rôle inconnu retombe sur `default`."""
    try:
        return parse_role(value)
    except ValueError:
        return default


def rank(role) -> int:
    return ROLE_RANK[parse_role(role)]


def has_at_least_role(actual, required) -> bool:
    return rank(actual) >= rank(required)

from enum import Enum


class UserRoleEnum(str, Enum):
    """
    Enum para papéis de utilizador - evita magic strings.
    Herda de str para ser serializável em JSON automaticamente.
    """
    CONSULTOR = "consultor"
    SUPERVISOR = "supervisor"
    GERENTE = "gerente"
    ADMINISTRADOR = "administrador"


class UserRole:
    """
    Classe helper para verificações de permissões.
    Usa UserRoleEnum internamente.
    """
    CONSULTOR = UserRoleEnum.CONSULTOR.value
    SUPERVISOR = UserRoleEnum.SUPERVISOR.value
    GERENTE = UserRoleEnum.GERENTE.value
    ADMINISTRADOR = UserRoleEnum.ADMINISTRADOR.value

    # Papéis que têm equipa abaixo de si
    TEAM_LEAD_ROLES = [
        UserRoleEnum.SUPERVISOR.value,
        UserRoleEnum.GERENTE.value,
    ]

    @classmethod
    def is_admin(cls, role: str) -> bool:
        """Administradores veem e alteram todos os leads."""
        return role == cls.ADMINISTRADOR

    @classmethod
    def is_team_lead(cls, role: str) -> bool:
        return role in cls.TEAM_LEAD_ROLES

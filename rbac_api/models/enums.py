"""Enumerations shared by models and schemas. Stored as strings."""
from enum import Enum


class DataType(str, Enum):
    """How a property value string is interpreted."""

    STRING = "String"
    INTEGER = "Integer"
    DECIMAL = "Decimal"
    BOOLEAN = "Boolean"
    DATETIME = "DateTime"
    DATE = "Date"
    TIME = "Time"
    EMAIL = "Email"
    PHONE = "Phone"
    URL = "Url"
    LIST = "List"
    JSON = "Json"


class AssignmentType(str, Enum):
    DIRECT = "Direct"
    INHERITED = "Inherited"
    AUTOMATIC = "Automatic"
    TEMPORARY = "Temporary"


class SyncStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    SUCCESS = "Success"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


class AuthenticationType(str, Enum):
    DATABASE = "Database"
    LDAP = "LDAP"
    OAUTH2 = "OAuth2"
    SAML = "SAML"
    JWT = "JWT"
    API_KEY = "ApiKey"


class TriggerType(str, Enum):
    PROPERTY_CHANGE = "PropertyChange"
    NEW_ENTITY = "NewEntity"
    ENTITY_UPDATE = "EntityUpdate"
    ENTITY_DELETE = "EntityDelete"
    SCHEDULE = "Schedule"
    MANUAL = "Manual"


class ActionType(str, Enum):
    ASSIGN_ROLE = "AssignRole"
    REMOVE_ROLE = "RemoveRole"
    UPDATE_PROPERTY = "UpdateProperty"
    CREATE_ENTITY = "CreateEntity"
    DELETE_ENTITY = "DeleteEntity"
    SEND_NOTIFICATION = "SendNotification"


class AuditAction(str, Enum):
    INSERT = "Insert"
    UPDATE = "Update"
    DELETE = "Delete"
    VIEW = "View"
    EXPORT = "Export"
    LOGIN = "Login"
    LOGOUT = "Logout"
    ACCESS_GRANTED = "AccessGranted"
    ACCESS_DENIED = "AccessDenied"


__all__ = [
    "ActionType",
    "AssignmentType",
    "AuditAction",
    "AuthenticationType",
    "DataType",
    "SyncStatus",
    "TriggerType",
]

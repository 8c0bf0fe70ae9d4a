"""Exception types raised by the policy engine."""


class PolicyError(Exception):
    """Base class for every error raised by this package."""

    default_message = "policy error"

    def __init__(self, message=None):
        super().__init__(message if message is not None else self.default_message)


class NameNotFoundError(PolicyError):
    """A user or role name is not known to the role manager."""

    default_message = "error: name does not exist"


class DomainParameterError(PolicyError):
    """More than one domain was given where at most one is allowed."""

    default_message = "error: domain should be 1 parameter"


class LinkNotFoundError(PolicyError):
    """The link between two names does not exist."""

    default_message = "error: link between name1 and name2 does not exist"


class UseDomainParameterError(PolicyError):
    """More than one use-domain flag was given."""

    default_message = "error: useDomain should be 1 parameter"


class InvalidFieldValuesError(PolicyError, ValueError):
    """A filtered operation was called without any field value."""

    default_message = "fieldValues requires at least one parameter"


class ObjectConditionError(PolicyError):
    """An object does not carry the prefix the condition requires."""

    default_message = "need to meet the prefix required by the object condition"


class EmptyConditionError(PolicyError):
    """An object condition came out empty."""

    default_message = "GetAllowedObjectConditions have an empty condition"


class ModelError(PolicyError):
    """The model or a rule does not fit the model's definitions."""

    default_message = "invalid model"
"""Process-wide logger used by the engine."""

from policykit.logger import DefaultLogger

_logger = DefaultLogger()


def set_logger(logger):
    """Replace the current logger."""
    global _logger
    _logger = logger


def get_logger():
    """Return the current logger."""
    return _logger


def log_model(model):
    """Log the model information."""
    _logger.log_model(model)


def log_enforce(matcher, request, result, explains):
    """Log an enforcement decision."""
    _logger.log_enforce(matcher, request, result, explains)


def log_role(roles):
    """Log information related to roles."""
    _logger.log_role(roles)


def log_policy(policy):
    """Log the policy information."""
    _logger.log_policy(policy)


def log_error(err, *args):
    """Log an error."""
    _logger.log_error(err, *args)
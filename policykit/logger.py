"""Logger interface and the default implementation on top of ``logging``."""

import logging
from abc import ABC, abstractmethod

_log = logging.getLogger("policykit")


def _format_value(value):
    """Render a value the way the log lines present lists and booleans."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_format_value(item) for item in value) + "]"
    if value is None:
        return "[]"
    return str(value)


class Logger(ABC):
    """Interface every logger used by the engine implements."""

    @abstractmethod
    def enable_log(self, enable):
        """Turn output on or off."""

    @abstractmethod
    def is_enabled(self):
        """Return whether output is on."""

    @abstractmethod
    def log_model(self, model):
        """Log the rows that describe a model."""

    @abstractmethod
    def log_enforce(self, matcher, request, result, explains):
        """Log an enforcement decision."""

    @abstractmethod
    def log_role(self, roles):
        """Log a list of roles."""

    @abstractmethod
    def log_policy(self, policy):
        """Log a mapping of policy type to rules."""

    @abstractmethod
    def log_error(self, err, *args):
        """Log an error with optional message parts."""


class DefaultLogger(Logger):
    """Logger writing to the ``policykit`` standard-library logger."""

    def __init__(self, enabled=False):
        self.enabled = enabled

    def enable_log(self, enable):
        self.enabled = bool(enable)

    def is_enabled(self):
        return self.enabled

    def log_model(self, model):
        if not self.enabled:
            return
        lines = "".join(f"{_format_value(row)}\n" for row in model or [])
        _log.info("Model: %s", lines)

    def log_enforce(self, matcher, request, result, explains):
        if not self.enabled:
            return
        request_text = ", ".join(_format_value(rval) for rval in request or [])
        text = f"Request: {request_text} ---> {_format_value(result)}\n"
        text += "Hit Policy: "
        if explains:
            text += ", ".join(_format_value(pval) for pval in explains) + " \n"
        _log.info("%s", text)

    def log_policy(self, policy):
        if not self.enabled:
            return
        lines = "".join(f"{key} : {_format_value(rules)}\n" for key, rules in policy.items())
        _log.info("Policy: %s", lines)

    def log_role(self, roles):
        if not self.enabled:
            return
        _log.info("Roles:  %s", "\n".join(roles or []))

    def log_error(self, err, *args):
        if not self.enabled:
            return
        _log.error("%s %s", _format_value(list(args)), err)
"""The access control model: sections of assertions loaded from model text."""

import re
from functools import cmp_to_key

from policykit.assertion import DEFAULT_SEP, Assertion
from policykit.errors import ModelError
from policykit.logger import DefaultLogger
from policykit.policy import PRIORITY_INDEX, PolicyMixin

DEFAULT_DOMAIN = ""
DEFAULT_SEPARATOR = "::"
DOMAIN_INDEX = "dom"
ALLOW_OVERRIDE_EFFECT = "some(where (p_eft == allow))"
SUBJECT_PRIORITY_EFFECT = "subjectPriority(p_eft) || deny"

SECTION_NAME_MAP = {
    "r": "request_definition",
    "p": "policy_definition",
    "g": "role_definition",
    "e": "policy_effect",
    "m": "matchers",
}

REQUIRED_SECTIONS = ("r", "p", "e", "m")

_PARAMS_RE = re.compile(r"\((.*?)\)")
_ESCAPE_RE = re.compile(r"\b((r|p)[0-9]*)\.")
_INT_RE = re.compile(r"[+-]?[0-9]+")

__all__ = [
    "Model",
    "new_model",
    "new_model_from_file",
    "new_model_from_string",
    "SECTION_NAME_MAP",
    "REQUIRED_SECTIONS",
    "ALLOW_OVERRIDE_EFFECT",
    "SUBJECT_PRIORITY_EFFECT",
    "DOMAIN_INDEX",
]


def _escape_assertion(text):
    """Turn ``r.sub`` style attribute access into ``r_sub`` identifiers."""
    return _ESCAPE_RE.sub(r"\1_", text)


def _remove_comments(text):
    position = text.find("#")
    if position == -1:
        return text
    return text[:position].strip()


def _params_tokens(value):
    match = _PARAMS_RE.search(value)
    if match is None or match.group(0) == "":
        return []
    return match.group(1).split(",")


def _key_suffix(i):
    return "" if i == 1 else str(i)


def _parse_int(text):
    return int(text) if _INT_RE.fullmatch(text) else None


def _name_with_domain(domain, name):
    return domain + DEFAULT_SEPARATOR + name


def _parse_config(text):
    """Parse model text into a mapping of ``section::key`` to value."""
    values = {}
    section = "default"
    pending = []
    pending_number = 0
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if pending:
            if line.endswith("\\"):
                pending.append(line[:-1].strip())
                continue
            pending.append(line)
            line = " ".join(part for part in pending if part)
            pending = []
            number = pending_number
        elif not line or line.startswith(("#", ";")):
            continue
        elif line.startswith("[") and line.endswith("]"):
            section = line[1:-1].strip()
            continue
        elif line.endswith("\\"):
            pending = [line[:-1].strip()]
            pending_number = number
            continue
        key, sep, value = line.partition("=")
        if not sep or not key.strip():
            raise ModelError(f"parse the content error : line {number} , {line} = ?")
        values[f"{section}::{key.strip()}"] = value.strip()
    if pending:
        line = " ".join(part for part in pending if part)
        key, sep, value = line.partition("=")
        if not sep or not key.strip():
            raise ModelError(f"parse the content error : line {pending_number} , {line} = ?")
        values[f"{section}::{key.strip()}"] = value.strip()
    return values


def _subject_hierarchy_map(policies):
    """Return the depth of every subject in the role tree of grouping rules."""
    hierarchy = {}
    children = {}
    for policy in policies:
        if len(policy) < 2:
            raise ModelError("policy g expect 2 more params")
        domain = DEFAULT_DOMAIN if len(policy) == 2 else policy[2]
        child = _name_with_domain(domain, policy[0])
        parent = _name_with_domain(domain, policy[1])
        children.setdefault(parent, []).append(child)
        hierarchy.setdefault(child, 0)
        hierarchy.setdefault(parent, 0)
        hierarchy[child] = 1
    for root in list(hierarchy):
        if hierarchy[root] != 0:
            continue
        level = 0
        queue = [root]
        while queue:
            next_queue = []
            for node in queue:
                hierarchy[node] = level
                next_queue.extend(children.get(node, ()))
            queue = next_queue
            level += 1
    return hierarchy


class Model(PolicyMixin, dict):
    """Mapping of section name (``r``, ``p``, ``g``, ``e``, ``m``) to assertions."""

    def __init__(self):
        super().__init__()
        self._logger = None
        self.set_logger(DefaultLogger())

    def add_def(self, sec, key, value):
        """Add an assertion to a section; return False for an empty value."""
        if value == "":
            return False
        assertion = Assertion(key=key, value=value, logger=self.get_logger())
        if sec in ("r", "p"):
            assertion.tokens = [f"{key}_{token.strip()}" for token in value.split(",")]
        elif sec == "g":
            assertion.params_tokens = _params_tokens(value)
            tokens = value.split(",")
            assertion.tokens = tokens[: len(tokens) - len(assertion.params_tokens)]
        else:
            assertion.value = _remove_comments(_escape_assertion(assertion.value))
        if sec == "m" and "in" in assertion.value:
            assertion.value = assertion.value.replace("[", "(").replace("]", ")")
        self.setdefault(sec, {})[key] = assertion
        return True

    def set_logger(self, logger):
        """Set the logger of the model and of every assertion."""
        for section in self.values():
            for assertion in section.values():
                assertion.logger = logger
        self._logger = logger

    def get_logger(self):
        """Return the model's logger."""
        return self._logger

    def load_model(self, path):
        """Load the model from a model file."""
        with open(path, encoding="utf-8") as handle:
            text = handle.read()
        self.load_model_from_text(text)

    def load_model_from_text(self, text):
        """Load the model from model text."""
        self.load_model_from_config(_parse_config(text))

    def load_model_from_config(self, cfg):
        """Load the model from a mapping of ``section::key`` to value."""
        for sec, name in SECTION_NAME_MAP.items():
            i = 1
            while self.add_def(sec, sec + _key_suffix(i), cfg.get(f"{name}::{sec}{_key_suffix(i)}", "")):
                i += 1
        missing = [SECTION_NAME_MAP[sec] for sec in REQUIRED_SECTIONS if not self.has_section(sec)]
        if missing:
            raise ModelError(f"missing required sections: {','.join(missing)}")

    def has_section(self, sec):
        """Return whether the section is present."""
        return self.get(sec) is not None

    def get_assertion(self, sec, ptype):
        """Return one assertion, raising ModelError when it is missing."""
        return self._assertion(sec, ptype)

    def print_model(self):
        """Send the model's definitions to the logger when it is enabled."""
        logger = self.get_logger()
        if not logger.is_enabled():
            return
        rows = [
            [sec, key, assertion.value]
            for sec, section in self.items()
            for key, assertion in section.items()
        ]
        logger.log_model(rows)

    @staticmethod
    def _reindex(assertion):
        for position, rule in enumerate(assertion.policy):
            assertion.policy_map[DEFAULT_SEP.join(rule)] = position

    def sort_policies_by_subject_hierarchy(self):
        """Order rules so that subjects deeper in the role tree come first."""
        if self["e"]["e"].value != SUBJECT_PRIORITY_EFFECT:
            return
        grouping = self.get_assertion("g", "g")
        for ptype, assertion in self.get("p", {}).items():
            try:
                domain_index = self.get_field_index(ptype, DOMAIN_INDEX)
            except ModelError:
                domain_index = -1
            hierarchy = _subject_hierarchy_map(grouping.policy)

            def level(rule, domain_index=domain_index, hierarchy=hierarchy):
                domain = rule[domain_index] if domain_index != -1 else DEFAULT_DOMAIN
                return hierarchy.get(_name_with_domain(domain, rule[0]), 0)

            assertion.policy[:] = sorted(assertion.policy, key=lambda rule: -level(rule))
            self._reindex(assertion)

    def sort_policies_by_priority(self):
        """Order rules of every type that has a priority field by ascending priority."""
        for ptype, assertion in self.get("p", {}).items():
            try:
                priority_index = self.get_field_index(ptype, PRIORITY_INDEX)
            except ModelError:
                continue

            def less(a, b, index=priority_index):
                first = _parse_int(a[index])
                if first is None:
                    return True
                second = _parse_int(b[index])
                if second is None:
                    return True
                return first < second

            def compare(a, b):
                if less(a, b):
                    return -1
                if less(b, a):
                    return 1
                return 0

            assertion.policy[:] = sorted(assertion.policy, key=cmp_to_key(compare))
            self._reindex(assertion)

    def to_text(self):
        """Render the model back to model text."""
        patterns = {}
        for sec in ("r", "p"):
            for token in self[sec][sec].tokens:
                patterns[token] = re.sub("^r_", "r.", re.sub("^p_", "p.", token))
        if "p_eft" in self["e"]["e"].value:
            patterns["p_eft"] = "p.eft"

        lines = []

        def write(sec):
            for assertion in self.get(sec, {}).values():
                value = assertion.value
                for pattern, replacement in patterns.items():
                    value = value.replace(pattern, replacement)
                lines.append(f"{sec} = {value}\n")

        lines.append("[request_definition]\n")
        write("r")
        lines.append("[policy_definition]\n")
        write("p")
        if "g" in self:
            lines.append("[role_definition]\n")
            for ptype, assertion in self["g"].items():
                lines.append(f"{ptype} = {assertion.value}\n")
        lines.append("[policy_effect]\n")
        write("e")
        lines.append("[matchers]\n")
        write("m")
        return "".join(lines)

    def copy(self):
        """Return a copy whose assertions hold their own rules."""
        duplicate = Model()
        for sec, section in self.items():
            duplicate[sec] = {ptype: assertion.copy() for ptype, assertion in section.items()}
        duplicate.set_logger(self.get_logger())
        return duplicate

    def get_field_index(self, ptype, field):
        """Return the position of a named field in a policy type's tokens."""
        assertion = self["p"][ptype]
        if field in assertion.field_index_map:
            return assertion.field_index_map[field]
        pattern = f"{ptype}_{field}"
        try:
            index = assertion.tokens.index(pattern)
        except ValueError:
            raise ModelError(
                f"{field} index is not set, please use enforcer.set_field_index() to set index"
            ) from None
        assertion.field_index_map[field] = index
        return index


def new_model():
    """Create an empty model."""
    return Model()


def new_model_from_file(path):
    """Create a model from a model file."""
    model = Model()
    model.load_model(path)
    return model


def new_model_from_string(text):
    """Create a model from model text."""
    model = Model()
    model.load_model_from_text(text)
    return model
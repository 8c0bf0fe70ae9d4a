"""Assertions: the single definitions that make up a model's sections."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from policykit.errors import ModelError

DEFAULT_SEP = ","


class PolicyOp(IntEnum):
    """Kind of incremental change applied to role links."""

    ADD = 0
    REMOVE = 1


@dataclass
class Assertion:
    """One expression in a model section, e.g. ``r = sub, obj, act``."""

    key: str = ""
    value: str = ""
    tokens: list = field(default_factory=list)
    params_tokens: list = field(default_factory=list)
    policy: list = field(default_factory=list)
    policy_map: dict = field(default_factory=dict)
    rm: Any = None
    cond_rm: Any = None
    field_index_map: dict = field(default_factory=dict)
    logger: Any = None

    def _role_arity(self):
        count = self.value.count("_")
        if count < 2:
            raise ModelError('the number of "_" in role definition should be at least 2')
        return count

    @staticmethod
    def _trimmed(rules, count):
        for rule in rules:
            if len(rule) < count:
                raise ModelError("grouping policy elements do not meet role definition")
            yield list(rule[:count])

    def build_incremental_role_links(self, rm, op, rules):
        """Add or remove the links for the given grouping rules."""
        self.rm = rm
        count = self._role_arity()
        for rule in self._trimmed(rules, count):
            if op == PolicyOp.ADD:
                rm.add_link(rule[0], rule[1], *rule[2:])
            elif op == PolicyOp.REMOVE:
                rm.delete_link(rule[0], rule[1], *rule[2:])

    def build_role_links(self, rm):
        """Add a link for every grouping rule held by this assertion."""
        self.rm = rm
        count = self._role_arity()
        for rule in self._trimmed(self.policy, count):
            rm.add_link(rule[0], rule[1], *rule[2:])

    def build_incremental_conditional_role_links(self, cond_rm, op, rules):
        """Add or remove conditional links for the given grouping rules."""
        self.cond_rm = cond_rm
        count = self._role_arity()
        for rule in self._trimmed(rules, count):
            if op == PolicyOp.ADD:
                self._add_conditional_role_link(rule, rule[2:len(self.tokens)])
            elif op == PolicyOp.REMOVE:
                cond_rm.delete_link(rule[0], rule[1], *rule[2:])

    def build_conditional_role_links(self, cond_rm):
        """Add a conditional link for every grouping rule held by this assertion."""
        self.cond_rm = cond_rm
        count = self._role_arity()
        for rule in self._trimmed(self.policy, count):
            self._add_conditional_role_link(rule, rule[2:len(self.tokens)])

    def _add_conditional_role_link(self, rule, domain_rule):
        params = rule[len(self.tokens):]
        if not domain_rule:
            self.cond_rm.add_link(rule[0], rule[1])
            self.cond_rm.set_link_condition_func_params(rule[0], rule[1], *params)
        else:
            domain = domain_rule[0]
            self.cond_rm.add_link(rule[0], rule[1], domain)
            self.cond_rm.set_domain_link_condition_func_params(rule[0], rule[1], domain, *params)

    def copy(self):
        """Return a copy with its own tokens, rules and rule index."""
        return Assertion(
            key=self.key,
            value=self.value,
            tokens=list(self.tokens),
            policy=[list(rule) for rule in self.policy],
            policy_map=dict(self.policy_map),
            field_index_map=self.field_index_map,
        )
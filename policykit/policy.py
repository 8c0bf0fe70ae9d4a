"""Policy storage operations shared by the model."""

import re

from policykit.assertion import DEFAULT_SEP, PolicyOp
from policykit.errors import ModelError

PRIORITY_INDEX = "priority"

_INT_RE = re.compile(r"[+-]?[0-9]+")

__all__ = ["PolicyMixin", "PolicyOp", "DEFAULT_SEP", "PRIORITY_INDEX"]


def _rule_key(rule):
    return DEFAULT_SEP.join(rule)


def _parse_int(text):
    """Return ``text`` as an int, or None when it is not a plain integer."""
    if _INT_RE.fullmatch(text):
        return int(text)
    return None


def _matches(rule, field_index, field_values):
    return all(
        value == "" or rule[field_index + offset] == value
        for offset, value in enumerate(field_values)
    )


class PolicyMixin:
    """Rule operations for a mapping of section name to assertions.

    The host class is a mapping from section names (``"p"``, ``"g"`` ...)
    to dictionaries of :class:`~policykit.assertion.Assertion`, and provides
    ``get_logger()``.
    """

    def _assertion(self, sec, ptype):
        section = self.get(sec)
        if section is None:
            raise ModelError(f"missing required section {sec}")
        assertion = section.get(ptype)
        if assertion is None:
            raise ModelError(f"missiong required definition {ptype} in section {sec}")
        return assertion

    def build_incremental_role_links(self, rm_map, op, sec, ptype, rules):
        """Incrementally add or remove role links for grouping rules."""
        if sec == "g" and rm_map.get(ptype) is not None:
            self._assertion(sec, ptype).build_incremental_role_links(
                rm_map[ptype], PolicyOp(op), rules
            )

    def build_role_links(self, rm_map):
        """Build every role link from the grouping rules."""
        self.print_policy()
        for ptype, assertion in self.get("g", {}).items():
            rm = rm_map.get(ptype)
            if rm is not None:
                assertion.build_role_links(rm)

    def build_incremental_conditional_role_links(self, cond_rm_map, op, sec, ptype, rules):
        """Incrementally add or remove conditional role links."""
        if sec == "g" and cond_rm_map.get(ptype) is not None:
            self._assertion(sec, ptype).build_incremental_conditional_role_links(
                cond_rm_map[ptype], PolicyOp(op), rules
            )

    def build_conditional_role_links(self, cond_rm_map):
        """Build every conditional role link from the grouping rules."""
        self.print_policy()
        for ptype, assertion in self.get("g", {}).items():
            cond_rm = cond_rm_map.get(ptype)
            if cond_rm is not None:
                assertion.build_conditional_role_links(cond_rm)

    def print_policy(self):
        """Send the current rules to the logger when it is enabled."""
        logger = self.get_logger()
        if not logger.is_enabled():
            return
        policy = {}
        for sec in ("p", "g"):
            for key, assertion in self.get(sec, {}).items():
                if key in policy:
                    policy[key] = policy[key] + list(assertion.policy)
                else:
                    policy[key] = assertion.policy
        logger.log_policy(policy)

    def clear_policy(self):
        """Drop every rule of the policy and grouping sections."""
        for sec in ("p", "g"):
            for assertion in self.get(sec, {}).values():
                assertion.policy = []
                assertion.policy_map = {}

    def get_policy(self, sec, ptype):
        """Return all rules of one policy type."""
        return self._assertion(sec, ptype).policy

    def get_filtered_policy(self, sec, ptype, field_index, *args):
        """Return the rules whose fields from ``field_index`` on match ``args``.

        An empty string in ``args`` matches any value.
        """
        assertion = self._assertion(sec, ptype)
        return [rule for rule in assertion.policy if _matches(rule, field_index, args)]

    def has_policy_ex(self, sec, ptype, rule):
        """Like :meth:`has_policy`, but first check the rule's size."""
        assertion = self._assertion(sec, ptype)
        expected = len(assertion.tokens)
        if (sec == "p" and len(rule) != expected) or (sec == "g" and len(rule) < expected):
            raise ModelError(
                f"invalid policy rule size: expected {expected}, got {len(rule)}, "
                f"rule: [{' '.join(rule)}]"
            )
        return self.has_policy(sec, ptype, rule)

    def has_policy(self, sec, ptype, rule):
        """Return whether the rule exists."""
        return _rule_key(rule) in self._assertion(sec, ptype).policy_map

    def has_policies(self, sec, ptype, rules):
        """Return whether any of the rules exists."""
        return any(self.has_policy(sec, ptype, rule) for rule in rules)

    def add_policy(self, sec, ptype, rule):
        """Append a rule, keeping priority order when the type has one."""
        assertion = self._assertion(sec, ptype)
        rule = list(rule)
        policy = assertion.policy
        policy_map = assertion.policy_map
        policy.append(rule)
        policy_map[_rule_key(rule)] = len(policy) - 1

        if sec != "p" or PRIORITY_INDEX not in assertion.field_index_map:
            return
        priority_index = assertion.field_index_map[PRIORITY_INDEX]
        inserted = _parse_int(rule[priority_index])
        if inserted is None:
            return
        position = len(policy) - 1
        while position > 0:
            previous = policy[position - 1]
            value = _parse_int(previous[priority_index])
            if value is None or value <= inserted:
                break
            policy[position] = previous
            policy_map[_rule_key(previous)] += 1
            position -= 1
        policy[position] = rule
        policy_map[_rule_key(rule)] = position

    def add_policies(self, sec, ptype, rules):
        """Add the rules that are not present yet."""
        self.add_policies_with_affected(sec, ptype, rules)

    def add_policies_with_affected(self, sec, ptype, rules):
        """Add the rules that are not present yet and return those added."""
        assertion = self._assertion(sec, ptype)
        affected = []
        for rule in rules:
            if _rule_key(rule) in assertion.policy_map:
                continue
            affected.append(rule)
            self.add_policy(sec, ptype, rule)
        return affected

    @staticmethod
    def _delete_at(assertion, index, rule):
        del assertion.policy[index]
        del assertion.policy_map[_rule_key(rule)]
        for position in range(index, len(assertion.policy)):
            assertion.policy_map[_rule_key(assertion.policy[position])] = position

    def remove_policy(self, sec, ptype, rule):
        """Remove a rule; return whether it was present."""
        assertion = self._assertion(sec, ptype)
        index = assertion.policy_map.get(_rule_key(rule))
        if index is None:
            return False
        self._delete_at(assertion, index, rule)
        return True

    def update_policy(self, sec, ptype, old_rule, new_rule):
        """Replace a rule in place; return whether the old rule was present."""
        assertion = self._assertion(sec, ptype)
        old_key = _rule_key(old_rule)
        index = assertion.policy_map.get(old_key)
        if index is None:
            return False
        assertion.policy[index] = list(new_rule)
        del assertion.policy_map[old_key]
        assertion.policy_map[_rule_key(new_rule)] = index
        return True

    def update_policies(self, sec, ptype, old_rules, new_rules):
        """Replace several rules; on any missing old rule, undo every change."""
        assertion = self._assertion(sec, ptype)
        if len(old_rules) != len(new_rules):
            raise ModelError(
                "the length of oldRules should be equal to the length of newRules, "
                f"but got the length of oldRules is {len(old_rules)}, "
                f"the length of newRules is {len(new_rules)}"
            )
        modified = []
        for old_rule, new_rule in zip(old_rules, new_rules):
            old_key = _rule_key(old_rule)
            index = assertion.policy_map.get(old_key)
            if index is None:
                for done_index, done_old, done_new in reversed(modified):
                    assertion.policy[done_index] = list(done_old)
                    assertion.policy_map.pop(_rule_key(done_new), None)
                    assertion.policy_map[_rule_key(done_old)] = done_index
                return False
            assertion.policy[index] = list(new_rule)
            del assertion.policy_map[old_key]
            assertion.policy_map[_rule_key(new_rule)] = index
            modified.append((index, old_rule, new_rule))
        return True

    def remove_policies(self, sec, ptype, rules):
        """Remove the rules; return whether any was removed."""
        return bool(self.remove_policies_with_affected(sec, ptype, rules))

    def remove_policies_with_affected(self, sec, ptype, rules):
        """Remove the rules and return those that were present."""
        assertion = self._assertion(sec, ptype)
        affected = []
        for rule in rules:
            index = assertion.policy_map.get(_rule_key(rule))
            if index is None:
                continue
            affected.append(rule)
            self._delete_at(assertion, index, rule)
        return affected

    def remove_filtered_policy(self, sec, ptype, field_index, *args):
        """Remove rules matching the field filter.

        Return a pair: whether anything was removed, and the removed rules.
        """
        assertion = self._assertion(sec, ptype)
        kept = []
        removed = []
        assertion.policy_map = {}
        for rule in assertion.policy:
            if _matches(rule, field_index, args):
                removed.append(rule)
            else:
                kept.append(rule)
                assertion.policy_map[_rule_key(rule)] = len(kept) - 1
        changed = len(kept) != len(assertion.policy)
        if changed:
            assertion.policy = kept
        return changed, removed

    def get_values_for_field_in_policy(self, sec, ptype, field_index):
        """Return the distinct values of one field, in first-seen order."""
        assertion = self._assertion(sec, ptype)
        return list(dict.fromkeys(rule[field_index] for rule in assertion.policy))

    def get_values_for_field_in_policy_all_types(self, sec, field_index):
        """Return the distinct values of one field across all types of a section."""
        values = []
        for ptype in self.get(sec, {}):
            values.extend(self.get_values_for_field_in_policy(sec, ptype, field_index))
        return list(dict.fromkeys(values))
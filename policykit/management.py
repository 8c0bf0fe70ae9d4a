"""Public API for reading and changing the rules held by an enforcer."""

from policykit.internal import InternalEnforcer

__all__ = ["ManagementEnforcer"]


def _rule_from_params(params):
    """Build a rule from either a single sequence or separate string fields."""
    if not params:
        raise ValueError("a rule needs at least one field")
    if len(params) == 1 and isinstance(params[0], (list, tuple)):
        return list(params[0])
    rule = []
    for param in params:
        if not isinstance(param, str):
            raise TypeError(f"rule fields must be strings, got {type(param).__name__}")
        rule.append(param)
    return rule


class ManagementEnforcer(InternalEnforcer):
    """Enforcer with the rule query and management operations."""

    # ---------------------------------------------------------------- queries

    def get_all_subjects(self):
        """Return the subjects that appear in any policy type."""
        return self.model.get_values_for_field_in_policy_all_types("p", 0)

    def get_all_named_subjects(self, ptype):
        """Return the subjects that appear in one policy type."""
        return self.model.get_values_for_field_in_policy("p", ptype, 0)

    def get_all_objects(self):
        """Return the objects that appear in any policy type."""
        return self.model.get_values_for_field_in_policy_all_types("p", 1)

    def get_all_named_objects(self, ptype):
        """Return the objects that appear in one policy type."""
        return self.model.get_values_for_field_in_policy("p", ptype, 1)

    def get_all_actions(self):
        """Return the actions that appear in any policy type."""
        return self.model.get_values_for_field_in_policy_all_types("p", 2)

    def get_all_named_actions(self, ptype):
        """Return the actions that appear in one policy type."""
        return self.model.get_values_for_field_in_policy("p", ptype, 2)

    def get_all_roles(self):
        """Return the roles that appear in any grouping type."""
        return self.model.get_values_for_field_in_policy_all_types("g", 1)

    def get_all_named_roles(self, ptype):
        """Return the roles that appear in one grouping type."""
        return self.model.get_values_for_field_in_policy("g", ptype, 1)

    def get_policy(self):
        """Return every authorization rule of type ``p``."""
        return self.get_named_policy("p")

    def get_filtered_policy(self, field_index, *args):
        """Return the ``p`` rules matching the field filter."""
        return self.get_filtered_named_policy("p", field_index, *args)

    def get_named_policy(self, ptype):
        """Return every authorization rule of one type."""
        return self.model.get_policy("p", ptype)

    def get_filtered_named_policy(self, ptype, field_index, *args):
        """Return the rules of one type matching the field filter."""
        return self.model.get_filtered_policy("p", ptype, field_index, *args)

    def get_grouping_policy(self):
        """Return every role inheritance rule of type ``g``."""
        return self.get_named_grouping_policy("g")

    def get_filtered_grouping_policy(self, field_index, *args):
        """Return the ``g`` rules matching the field filter."""
        return self.get_filtered_named_grouping_policy("g", field_index, *args)

    def get_named_grouping_policy(self, ptype):
        """Return every role inheritance rule of one type."""
        return self.model.get_policy("g", ptype)

    def get_filtered_named_grouping_policy(self, ptype, field_index, *args):
        """Return the role inheritance rules of one type matching the filter."""
        return self.model.get_filtered_policy("g", ptype, field_index, *args)

    def has_policy(self, *args):
        """Return whether a ``p`` rule exists."""
        return self.has_named_policy("p", *args)

    def has_named_policy(self, ptype, *args):
        """Return whether a rule of one type exists."""
        return self.model.has_policy("p", ptype, _rule_from_params(args))

    # ----------------------------------------------------- policy changes

    def add_policy(self, *args):
        """Add a ``p`` rule."""
        return self.add_named_policy("p", *args)

    def add_policies(self, rules):
        """Add ``p`` rules; nothing is added if any already exists."""
        return self.add_named_policies("p", rules)

    def add_policies_ex(self, rules):
        """Add the ``p`` rules that do not exist yet."""
        return self.add_named_policies_ex("p", rules)

    def add_named_policy(self, ptype, *args):
        """Add a rule of one type."""
        return self._add_policy("p", ptype, _rule_from_params(args))

    def add_named_policies(self, ptype, rules):
        """Add rules of one type; nothing is added if any already exists."""
        return self._add_policies("p", ptype, rules, False)

    def add_named_policies_ex(self, ptype, rules):
        """Add the rules of one type that do not exist yet."""
        return self._add_policies("p", ptype, rules, True)

    def remove_policy(self, *args):
        """Remove a ``p`` rule."""
        return self.remove_named_policy("p", *args)

    def update_policy(self, old_policy, new_policy):
        """Replace a ``p`` rule."""
        return self.update_named_policy("p", old_policy, new_policy)

    def update_named_policy(self, ptype, p1, p2):
        """Replace a rule of one type."""
        return self._update_policy("p", ptype, p1, p2)

    def update_policies(self, old_policies, new_policies):
        """Replace several ``p`` rules."""
        return self.update_named_policies("p", old_policies, new_policies)

    def update_named_policies(self, ptype, p1, p2):
        """Replace several rules of one type."""
        return self._update_policies("p", ptype, p1, p2)

    def update_filtered_policies(self, new_policies, field_index, *args):
        """Replace the ``p`` rules selected by the adapter's filter."""
        return self.update_filtered_named_policies("p", new_policies, field_index, *args)

    def update_filtered_named_policies(self, ptype, new_policies, field_index, *args):
        """Replace the rules of one type selected by the adapter's filter."""
        return self._update_filtered_policies("p", ptype, new_policies, field_index, *args)

    def remove_policies(self, rules):
        """Remove ``p`` rules."""
        return self.remove_named_policies("p", rules)

    def remove_filtered_policy(self, field_index, *args):
        """Remove the ``p`` rules matching the field filter."""
        return self.remove_filtered_named_policy("p", field_index, *args)

    def remove_named_policy(self, ptype, *args):
        """Remove a rule of one type."""
        return self._remove_policy("p", ptype, _rule_from_params(args))

    def remove_named_policies(self, ptype, rules):
        """Remove rules of one type."""
        return self._remove_policies("p", ptype, rules)

    def remove_filtered_named_policy(self, ptype, field_index, *args):
        """Remove the rules of one type matching the field filter."""
        return self._remove_filtered_policy("p", ptype, field_index, list(args))

    # --------------------------------------------------- grouping changes

    def has_grouping_policy(self, *args):
        """Return whether a ``g`` rule exists."""
        return self.has_named_grouping_policy("g", *args)

    def has_named_grouping_policy(self, ptype, *args):
        """Return whether a role inheritance rule of one type exists."""
        return self.model.has_policy("g", ptype, _rule_from_params(args))

    def add_grouping_policy(self, *args):
        """Add a ``g`` rule."""
        return self.add_named_grouping_policy("g", *args)

    def add_grouping_policies(self, rules):
        """Add ``g`` rules; nothing is added if any already exists."""
        return self.add_named_grouping_policies("g", rules)

    def add_grouping_policies_ex(self, rules):
        """Add the ``g`` rules that do not exist yet."""
        return self.add_named_grouping_policies_ex("g", rules)

    def add_named_grouping_policy(self, ptype, *args):
        """Add a role inheritance rule of one type."""
        return self._add_policy("g", ptype, _rule_from_params(args))

    def add_named_grouping_policies(self, ptype, rules):
        """Add role inheritance rules; nothing is added if any already exists."""
        return self._add_policies("g", ptype, rules, False)

    def add_named_grouping_policies_ex(self, ptype, rules):
        """Add the role inheritance rules that do not exist yet."""
        return self._add_policies("g", ptype, rules, True)

    def remove_grouping_policy(self, *args):
        """Remove a ``g`` rule."""
        return self.remove_named_grouping_policy("g", *args)

    def remove_grouping_policies(self, rules):
        """Remove ``g`` rules."""
        return self.remove_named_grouping_policies("g", rules)

    def remove_filtered_grouping_policy(self, field_index, *args):
        """Remove the ``g`` rules matching the field filter."""
        return self.remove_filtered_named_grouping_policy("g", field_index, *args)

    def remove_named_grouping_policy(self, ptype, *args):
        """Remove a role inheritance rule of one type."""
        return self._remove_policy("g", ptype, _rule_from_params(args))

    def remove_named_grouping_policies(self, ptype, rules):
        """Remove role inheritance rules of one type."""
        return self._remove_policies("g", ptype, rules)

    def update_grouping_policy(self, old_rule, new_rule):
        """Replace a ``g`` rule."""
        return self.update_named_grouping_policy("g", old_rule, new_rule)

    def update_grouping_policies(self, old_rules, new_rules):
        """Replace several ``g`` rules."""
        return self.update_named_grouping_policies("g", old_rules, new_rules)

    def update_named_grouping_policy(self, ptype, old_rule, new_rule):
        """Replace a role inheritance rule of one type."""
        return self._update_policy("g", ptype, old_rule, new_rule)

    def update_named_grouping_policies(self, ptype, old_rules, new_rules):
        """Replace several role inheritance rules of one type."""
        return self._update_policies("g", ptype, old_rules, new_rules)

    def remove_filtered_named_grouping_policy(self, ptype, field_index, *args):
        """Remove the role inheritance rules of one type matching the filter."""
        return self._remove_filtered_policy("g", ptype, field_index, list(args))

    # ------------------------------------------ changes without notification

    def self_add_policy(self, sec, ptype, rule):
        """Add a rule without notifying the watcher."""
        return self._add_policy_without_notify(sec, ptype, rule)

    def self_add_policies(self, sec, ptype, rules):
        """Add rules without notifying the watcher; none if any exists."""
        return self._add_policies_without_notify(sec, ptype, rules, False)

    def self_add_policies_ex(self, sec, ptype, rules):
        """Add the missing rules without notifying the watcher."""
        return self._add_policies_without_notify(sec, ptype, rules, True)

    def self_remove_policy(self, sec, ptype, rule):
        """Remove a rule without notifying the watcher."""
        return self._remove_policy_without_notify(sec, ptype, rule)

    def self_remove_policies(self, sec, ptype, rules):
        """Remove rules without notifying the watcher."""
        return self._remove_policies_without_notify(sec, ptype, rules)

    def self_remove_filtered_policy(self, sec, ptype, field_index, *args):
        """Remove filtered rules without notifying the watcher."""
        return self._remove_filtered_policy_without_notify(sec, ptype, field_index, list(args))

    def self_update_policy(self, sec, ptype, old_rule, new_rule):
        """Replace a rule without notifying the watcher."""
        return self._update_policy_without_notify(sec, ptype, old_rule, new_rule)

    def self_update_policies(self, sec, ptype, old_rules, new_rules):
        """Replace several rules without notifying the watcher."""
        return self._update_policies_without_notify(sec, ptype, old_rules, new_rules)
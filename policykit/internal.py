"""Enforcer core: rule changes kept in step with adapter, watcher and role links."""

import os

from policykit.assertion import PolicyOp
from policykit.errors import InvalidFieldValuesError, ModelError, PolicyError
from policykit.model import Model, new_model_from_file

__all__ = ["InternalEnforcer"]


class InternalEnforcer:
    """Holds a model and applies rule changes to it.

    Every change may be forwarded to a storage adapter (when ``auto_save``
    is on), announced to a watcher (when ``auto_notify_watcher`` is on) or
    handed to a dispatcher instead of being applied locally (when
    ``auto_notify_dispatcher`` is on). Adapter methods that raise
    :class:`NotImplementedError` are treated as optional and skipped.
    """

    def __init__(
        self,
        model,
        adapter=None,
        watcher=None,
        dispatcher=None,
        role_managers=None,
        cond_role_managers=None,
    ):
        if isinstance(model, (str, os.PathLike)):
            model = new_model_from_file(model)
        if not isinstance(model, Model):
            raise ModelError("model must be a Model or the path of a model file")
        self.model = model
        self.adapter = adapter
        self.watcher = None
        self.dispatcher = dispatcher
        self.rm_map = dict(role_managers or {})
        self.cond_rm_map = dict(cond_role_managers or {})
        self.auto_save = True
        self.auto_notify_watcher = True
        self.auto_notify_dispatcher = True
        self.auto_build_role_links = True
        if adapter is not None:
            self.load_policy()
        if watcher is not None:
            self.set_watcher(watcher)

    # ----------------------------------------------------------------- setup

    def get_model(self):
        """Return the current model."""
        return self.model

    def set_watcher(self, watcher):
        """Set the watcher and let it trigger a policy reload."""
        self.watcher = watcher
        register = getattr(watcher, "set_update_callback", None)
        if register is not None:
            register(lambda *_: self.load_policy())

    def clear_policy(self):
        """Drop every rule, or ask the dispatcher to do so."""
        if self._dispatching():
            self.dispatcher.clear_policy()
            return
        self.model.clear_policy()

    def _load_policy_from_adapter(self, base_model):
        if self.adapter is None:
            raise PolicyError("adapter is not set")
        loaded = base_model.copy()
        loaded.clear_policy()
        self.adapter.load_policy(loaded)
        loaded.sort_policies_by_subject_hierarchy()
        loaded.sort_policies_by_priority()
        return loaded

    def _apply_modified_model(self, modified):
        if self.auto_build_role_links:
            self._rebuild_role_links(modified)
        self.model = modified

    def load_policy(self):
        """Reload every rule from the adapter."""
        self._apply_modified_model(self._load_policy_from_adapter(self.model))

    def save_policy(self):
        """Write every rule back through the adapter."""
        if self.adapter is None:
            raise PolicyError("adapter is not set")
        self.adapter.save_policy(self.model)
        if self._should_notify():
            handler = getattr(self.watcher, "update_for_save_policy", None)
            if handler is not None:
                handler(self.model)
            else:
                self.watcher.update()

    def _rebuild_role_links(self, model):
        for rm in self.rm_map.values():
            rm.clear()
        model.build_role_links(self.rm_map)
        if self.cond_rm_map:
            for cond_rm in self.cond_rm_map.values():
                cond_rm.clear()
            model.build_conditional_role_links(self.cond_rm_map)

    def build_role_links(self):
        """Rebuild every role link from the grouping rules."""
        self._rebuild_role_links(self.model)

    def build_incremental_role_links(self, op, ptype, rules):
        """Add or remove the role links of the given grouping rules."""
        self.model.build_incremental_role_links(self.rm_map, op, "g", ptype, rules)

    def build_incremental_conditional_role_links(self, op, ptype, rules):
        """Add or remove the conditional role links of the given grouping rules."""
        self.model.build_incremental_conditional_role_links(
            self.cond_rm_map, op, "g", ptype, rules
        )

    def get_field_index(self, ptype, field):
        """Return the position of a named field of a policy type."""
        return self.model.get_field_index(ptype, field)

    def set_field_index(self, ptype, field, index):
        """Fix the position of a named field of a policy type."""
        self.model["p"][ptype].field_index_map[field] = index

    # --------------------------------------------------------------- helpers

    def _should_persist(self):
        return self.adapter is not None and self.auto_save

    def _should_notify(self):
        return self.watcher is not None and self.auto_notify_watcher

    def _dispatching(self):
        return self.dispatcher is not None and self.auto_notify_dispatcher

    def _persist(self, method, *args):
        if not self._should_persist():
            return None
        handler = getattr(self.adapter, method, None)
        if handler is None:
            return None
        try:
            return handler(*args)
        except NotImplementedError:
            return None

    def _notify(self, method, *args):
        if not self._should_notify():
            return
        handler = getattr(self.watcher, method, None)
        if handler is not None:
            handler(*args)
        else:
            self.watcher.update()

    # ----------------------------------------------- changes without notice

    def _add_policy_without_notify(self, sec, ptype, rule):
        if self._dispatching():
            self.dispatcher.add_policies(sec, ptype, [rule])
            return True
        if self.model.has_policy(sec, ptype, rule):
            return True
        self._persist("add_policy", sec, ptype, rule)
        self.model.add_policy(sec, ptype, rule)
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.ADD, ptype, [rule])
        return True

    def _add_policies_without_notify(self, sec, ptype, rules, auto_remove_repeat):
        if self._dispatching():
            self.dispatcher.add_policies(sec, ptype, rules)
            return True
        if not auto_remove_repeat and self.model.has_policies(sec, ptype, rules):
            return False
        self._persist("add_policies", sec, ptype, rules)
        self.model.add_policies(sec, ptype, rules)
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.ADD, ptype, rules)
            self.build_incremental_conditional_role_links(PolicyOp.ADD, ptype, rules)
        return True

    def _remove_policy_without_notify(self, sec, ptype, rule):
        if self._dispatching():
            self.dispatcher.remove_policies(sec, ptype, [rule])
            return True
        self._persist("remove_policy", sec, ptype, rule)
        if not self.model.remove_policy(sec, ptype, rule):
            return False
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.REMOVE, ptype, [rule])
        return True

    def _update_policy_without_notify(self, sec, ptype, old_rule, new_rule):
        if self._dispatching():
            self.dispatcher.update_policy(sec, ptype, old_rule, new_rule)
            return True
        self._persist("update_policy", sec, ptype, old_rule, new_rule)
        if not self.model.update_policy(sec, ptype, old_rule, new_rule):
            return False
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.REMOVE, ptype, [old_rule])
            self.build_incremental_role_links(PolicyOp.ADD, ptype, [new_rule])
        return True

    def _update_policies_without_notify(self, sec, ptype, old_rules, new_rules):
        if len(old_rules) != len(new_rules):
            raise ModelError(
                "the length of oldRules should be equal to the length of newRules, "
                f"but got the length of oldRules is {len(old_rules)}, "
                f"the length of newRules is {len(new_rules)}"
            )
        if self._dispatching():
            self.dispatcher.update_policies(sec, ptype, old_rules, new_rules)
            return True
        self._persist("update_policies", sec, ptype, old_rules, new_rules)
        if not self.model.update_policies(sec, ptype, old_rules, new_rules):
            return False
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.REMOVE, ptype, old_rules)
            self.build_incremental_role_links(PolicyOp.ADD, ptype, new_rules)
        return True

    def _remove_policies_without_notify(self, sec, ptype, rules):
        if not self.model.has_policies(sec, ptype, rules):
            return False
        if self._dispatching():
            self.dispatcher.remove_policies(sec, ptype, rules)
            return True
        self._persist("remove_policies", sec, ptype, rules)
        if not self.model.remove_policies(sec, ptype, rules):
            return False
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.REMOVE, ptype, rules)
        return True

    def _remove_filtered_policy_without_notify(self, sec, ptype, field_index, field_values):
        if not field_values:
            raise InvalidFieldValuesError()
        if self._dispatching():
            self.dispatcher.remove_filtered_policy(sec, ptype, field_index, *field_values)
            return True
        self._persist("remove_filtered_policy", sec, ptype, field_index, *field_values)
        removed, effects = self.model.remove_filtered_policy(sec, ptype, field_index, *field_values)
        if not removed:
            return False
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.REMOVE, ptype, effects)
        return True

    def _update_filtered_policies_without_notify(self, sec, ptype, new_rules, field_index, *field_values):
        assertion = self.model.get_assertion(sec, ptype)
        old_rules = []
        if self._should_persist():
            old_rules = list(
                self._persist(
                    "update_filtered_policies", sec, ptype, new_rules, field_index, *field_values
                )
                or []
            )
            # Some adapters return the old rules with their policy type in front.
            width = len(assertion.tokens) + 1
            old_rules = [rule[1:] if len(rule) == width else rule for rule in old_rules]

        if self._dispatching():
            self.dispatcher.update_filtered_policies(sec, ptype, old_rules, new_rules)
            return old_rules

        changed = self.model.remove_policies(sec, ptype, old_rules)
        self.model.add_policies(sec, ptype, new_rules)
        if not (changed and new_rules):
            return []
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.REMOVE, ptype, old_rules)
            self.build_incremental_role_links(PolicyOp.ADD, ptype, new_rules)
        return old_rules

    # -------------------------------------------------- changes with notice

    def _add_policy(self, sec, ptype, rule):
        if not self._add_policy_without_notify(sec, ptype, rule):
            return False
        self._notify("update_for_add_policy", sec, ptype, *rule)
        return True

    def _add_policies(self, sec, ptype, rules, auto_remove_repeat):
        if not self._add_policies_without_notify(sec, ptype, rules, auto_remove_repeat):
            return False
        self._notify("update_for_add_policies", sec, ptype, *rules)
        return True

    def _remove_policy(self, sec, ptype, rule):
        if not self._remove_policy_without_notify(sec, ptype, rule):
            return False
        self._notify("update_for_remove_policy", sec, ptype, *rule)
        return True

    def _update_policy(self, sec, ptype, old_rule, new_rule):
        if not self._update_policy_without_notify(sec, ptype, old_rule, new_rule):
            return False
        self._notify("update_for_update_policy", sec, ptype, old_rule, new_rule)
        return True

    def _update_policies(self, sec, ptype, old_rules, new_rules):
        if not self._update_policies_without_notify(sec, ptype, old_rules, new_rules):
            return False
        self._notify("update_for_update_policies", sec, ptype, old_rules, new_rules)
        return True

    def _remove_policies(self, sec, ptype, rules):
        if not self._remove_policies_without_notify(sec, ptype, rules):
            return False
        self._notify("update_for_remove_policies", sec, ptype, *rules)
        return True

    def _remove_filtered_policy(self, sec, ptype, field_index, field_values):
        if not self._remove_filtered_policy_without_notify(sec, ptype, field_index, field_values):
            return False
        self._notify("update_for_remove_filtered_policy", sec, ptype, field_index, *field_values)
        return True

    def _update_filtered_policies(self, sec, ptype, new_rules, field_index, *field_values):
        old_rules = self._update_filtered_policies_without_notify(
            sec, ptype, new_rules, field_index, *field_values
        )
        if not old_rules:
            return False
        self._notify("update_for_update_policies", sec, ptype, old_rules, new_rules)
        return True
"""An enforcer that is safe to share between threads."""

import threading
from contextlib import contextmanager

from policykit.management import ManagementEnforcer

__all__ = ["SyncedEnforcer"]


class _ReadWriteLock:
    """Lock allowing many readers or one writer at a time."""

    def __init__(self):
        self._cond = threading.Condition()
        self._readers = 0
        self._writer = False

    def acquire_read(self):
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1

    def release_read(self):
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self):
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True

    def release_write(self):
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self):
        """Hold the lock shared for the duration of the block."""
        self.acquire_read()
        try:
            yield self
        finally:
            self.release_read()

    @contextmanager
    def write(self):
        """Hold the lock exclusively for the duration of the block."""
        self.acquire_write()
        try:
            yield self
        finally:
            self.release_write()


class SyncedEnforcer:
    """Wraps a :class:`ManagementEnforcer` behind a readers-writer lock.

    Queries take the lock shared, changes take it exclusively. The policy
    can also be reloaded from the adapter periodically in a background
    thread.
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
        self._lock = _ReadWriteLock()
        self._enforcer = ManagementEnforcer(
            model,
            adapter=adapter,
            dispatcher=dispatcher,
            role_managers=role_managers,
            cond_role_managers=cond_role_managers,
        )
        self._auto_load_guard = threading.Lock()
        self._auto_load_running = False
        self._stop_auto_load = None
        if watcher is not None:
            self.set_watcher(watcher)

    # ------------------------------------------------------------ plumbing

    def get_lock(self):
        """Return the readers-writer lock guarding the enforcer."""
        return self._lock

    def get_model(self):
        """Return the current model."""
        with self._lock.read():
            return self._enforcer.get_model()

    def is_auto_loading_running(self):
        """Return whether the periodic reload thread is running."""
        with self._auto_load_guard:
            return self._auto_load_running

    def start_auto_load_policy(self, interval):
        """Reload the policy every ``interval`` seconds in a background thread.

        Does nothing when a reload thread is already running. Errors raised
        by a reload are ignored.
        """
        with self._auto_load_guard:
            if self._auto_load_running:
                return
            self._auto_load_running = True
            stop = threading.Event()
            self._stop_auto_load = stop

        def run():
            try:
                while not stop.wait(interval):
                    try:
                        self.load_policy()
                    except Exception:  # noqa: BLE001 - reload errors are ignored
                        pass
            finally:
                with self._auto_load_guard:
                    self._auto_load_running = False

        threading.Thread(target=run, name="policykit-auto-load", daemon=True).start()

    def stop_auto_load_policy(self):
        """Ask the periodic reload thread to exit."""
        with self._auto_load_guard:
            if self._auto_load_running and self._stop_auto_load is not None:
                self._stop_auto_load.set()

    def set_watcher(self, watcher):
        """Set the watcher; its update callback reloads the policy under the lock."""
        with self._lock.write():
            self._enforcer.set_watcher(watcher)
        register = getattr(watcher, "set_update_callback", None)
        if register is not None:
            register(lambda *_: self.load_policy())

    def clear_policy(self):
        """Drop every rule."""
        with self._lock.write():
            self._enforcer.clear_policy()

    def load_policy(self):
        """Reload every rule from the adapter."""
        with self._lock.read():
            loaded = self._enforcer._load_policy_from_adapter(self._enforcer.model)
        with self._lock.write():
            self._enforcer._apply_modified_model(loaded)

    def save_policy(self):
        """Write every rule back through the adapter."""
        with self._lock.write():
            self._enforcer.save_policy()

    def build_role_links(self):
        """Rebuild every role link from the grouping rules."""
        with self._lock.write():
            self._enforcer.build_role_links()

    # ------------------------------------------------------------- queries

    def get_all_subjects(self):
        """Return the subjects that appear in any policy type."""
        with self._lock.read():
            return self._enforcer.get_all_subjects()

    def get_all_named_subjects(self, ptype):
        """Return the subjects that appear in one policy type."""
        with self._lock.read():
            return self._enforcer.get_all_named_subjects(ptype)

    def get_all_objects(self):
        """Return the objects that appear in any policy type."""
        with self._lock.read():
            return self._enforcer.get_all_objects()

    def get_all_named_objects(self, ptype):
        """Return the objects that appear in one policy type."""
        with self._lock.read():
            return self._enforcer.get_all_named_objects(ptype)

    def get_all_actions(self):
        """Return the actions that appear in any policy type."""
        with self._lock.read():
            return self._enforcer.get_all_actions()

    def get_all_named_actions(self, ptype):
        """Return the actions that appear in one policy type."""
        with self._lock.read():
            return self._enforcer.get_all_named_actions(ptype)

    def get_all_roles(self):
        """Return the roles that appear in any grouping type."""
        with self._lock.read():
            return self._enforcer.get_all_roles()

    def get_all_named_roles(self, ptype):
        """Return the roles that appear in one grouping type."""
        with self._lock.read():
            return self._enforcer.get_all_named_roles(ptype)

    def get_policy(self):
        """Return every ``p`` rule."""
        with self._lock.read():
            return list(self._enforcer.get_policy())

    def get_filtered_policy(self, field_index, *args):
        """Return the ``p`` rules matching the field filter."""
        with self._lock.read():
            return self._enforcer.get_filtered_policy(field_index, *args)

    def get_named_policy(self, ptype):
        """Return every rule of one type."""
        with self._lock.read():
            return list(self._enforcer.get_named_policy(ptype))

    def get_filtered_named_policy(self, ptype, field_index, *args):
        """Return the rules of one type matching the field filter."""
        with self._lock.read():
            return self._enforcer.get_filtered_named_policy(ptype, field_index, *args)

    def get_grouping_policy(self):
        """Return every ``g`` rule."""
        with self._lock.read():
            return list(self._enforcer.get_grouping_policy())

    def get_filtered_grouping_policy(self, field_index, *args):
        """Return the ``g`` rules matching the field filter."""
        with self._lock.read():
            return self._enforcer.get_filtered_grouping_policy(field_index, *args)

    def get_named_grouping_policy(self, ptype):
        """Return every role inheritance rule of one type."""
        with self._lock.read():
            return list(self._enforcer.get_named_grouping_policy(ptype))

    def get_filtered_named_grouping_policy(self, ptype, field_index, *args):
        """Return the role inheritance rules of one type matching the filter."""
        with self._lock.read():
            return self._enforcer.get_filtered_named_grouping_policy(ptype, field_index, *args)

    def has_policy(self, *args):
        """Return whether a ``p`` rule exists."""
        with self._lock.read():
            return self._enforcer.has_policy(*args)

    def has_named_policy(self, ptype, *args):
        """Return whether a rule of one type exists."""
        with self._lock.read():
            return self._enforcer.has_named_policy(ptype, *args)

    # ------------------------------------------------------ policy changes

    def add_policy(self, *args):
        """Add a ``p`` rule."""
        with self._lock.write():
            return self._enforcer.add_policy(*args)

    def add_policies(self, rules):
        """Add ``p`` rules; nothing is added if any already exists."""
        with self._lock.write():
            return self._enforcer.add_policies(rules)

    def add_policies_ex(self, rules):
        """Add the ``p`` rules that do not exist yet."""
        with self._lock.write():
            return self._enforcer.add_policies_ex(rules)

    def add_named_policy(self, ptype, *args):
        """Add a rule of one type."""
        with self._lock.write():
            return self._enforcer.add_named_policy(ptype, *args)

    def add_named_policies(self, ptype, rules):
        """Add rules of one type; nothing is added if any already exists."""
        with self._lock.write():
            return self._enforcer.add_named_policies(ptype, rules)

    def add_named_policies_ex(self, ptype, rules):
        """Add the rules of one type that do not exist yet."""
        with self._lock.write():
            return self._enforcer.add_named_policies_ex(ptype, rules)

    def remove_policy(self, *args):
        """Remove a ``p`` rule."""
        with self._lock.write():
            return self._enforcer.remove_policy(*args)

    def update_policy(self, old_policy, new_policy):
        """Replace a ``p`` rule."""
        with self._lock.write():
            return self._enforcer.update_policy(old_policy, new_policy)

    def update_named_policy(self, ptype, p1, p2):
        """Replace a rule of one type."""
        with self._lock.write():
            return self._enforcer.update_named_policy(ptype, p1, p2)

    def update_policies(self, old_policies, new_policies):
        """Replace several ``p`` rules."""
        with self._lock.write():
            return self._enforcer.update_policies(old_policies, new_policies)

    def update_named_policies(self, ptype, p1, p2):
        """Replace several rules of one type."""
        with self._lock.write():
            return self._enforcer.update_named_policies(ptype, p1, p2)

    def update_filtered_policies(self, new_policies, field_index, *args):
        """Replace the ``p`` rules selected by the adapter's filter."""
        with self._lock.write():
            return self._enforcer.update_filtered_policies(new_policies, field_index, *args)

    def update_filtered_named_policies(self, ptype, new_policies, field_index, *args):
        """Replace the rules of one type selected by the adapter's filter."""
        with self._lock.write():
            return self._enforcer.update_filtered_named_policies(
                ptype, new_policies, field_index, *args
            )

    def remove_policies(self, rules):
        """Remove ``p`` rules."""
        with self._lock.write():
            return self._enforcer.remove_policies(rules)

    def remove_filtered_policy(self, field_index, *args):
        """Remove the ``p`` rules matching the field filter."""
        with self._lock.write():
            return self._enforcer.remove_filtered_policy(field_index, *args)

    def remove_named_policy(self, ptype, *args):
        """Remove a rule of one type."""
        with self._lock.write():
            return self._enforcer.remove_named_policy(ptype, *args)

    def remove_named_policies(self, ptype, rules):
        """Remove rules of one type."""
        with self._lock.write():
            return self._enforcer.remove_named_policies(ptype, rules)

    def remove_filtered_named_policy(self, ptype, field_index, *args):
        """Remove the rules of one type matching the field filter."""
        with self._lock.write():
            return self._enforcer.remove_filtered_named_policy(ptype, field_index, *args)

    # ---------------------------------------------------- grouping changes

    def has_grouping_policy(self, *args):
        """Return whether a ``g`` rule exists."""
        with self._lock.read():
            return self._enforcer.has_grouping_policy(*args)

    def has_named_grouping_policy(self, ptype, *args):
        """Return whether a role inheritance rule of one type exists."""
        with self._lock.read():
            return self._enforcer.has_named_grouping_policy(ptype, *args)

    def add_grouping_policy(self, *args):
        """Add a ``g`` rule."""
        with self._lock.write():
            return self._enforcer.add_grouping_policy(*args)

    def add_grouping_policies(self, rules):
        """Add ``g`` rules; nothing is added if any already exists."""
        with self._lock.write():
            return self._enforcer.add_grouping_policies(rules)

    def add_grouping_policies_ex(self, rules):
        """Add the ``g`` rules that do not exist yet."""
        with self._lock.write():
            return self._enforcer.add_grouping_policies_ex(rules)

    def add_named_grouping_policy(self, ptype, *args):
        """Add a role inheritance rule of one type."""
        with self._lock.write():
            return self._enforcer.add_named_grouping_policy(ptype, *args)

    def add_named_grouping_policies(self, ptype, rules):
        """Add role inheritance rules; nothing is added if any already exists."""
        with self._lock.write():
            return self._enforcer.add_named_grouping_policies(ptype, rules)

    def add_named_grouping_policies_ex(self, ptype, rules):
        """Add the role inheritance rules that do not exist yet."""
        with self._lock.write():
            return self._enforcer.add_named_grouping_policies_ex(ptype, rules)

    def remove_grouping_policy(self, *args):
        """Remove a ``g`` rule."""
        with self._lock.write():
            return self._enforcer.remove_grouping_policy(*args)

    def remove_grouping_policies(self, rules):
        """Remove ``g`` rules."""
        with self._lock.write():
            return self._enforcer.remove_grouping_policies(rules)

    def remove_filtered_grouping_policy(self, field_index, *args):
        """Remove the ``g`` rules matching the field filter."""
        with self._lock.write():
            return self._enforcer.remove_filtered_grouping_policy(field_index, *args)

    def remove_named_grouping_policy(self, ptype, *args):
        """Remove a role inheritance rule of one type."""
        with self._lock.write():
            return self._enforcer.remove_named_grouping_policy(ptype, *args)

    def remove_named_grouping_policies(self, ptype, rules):
        """Remove role inheritance rules of one type."""
        with self._lock.write():
            return self._enforcer.remove_named_grouping_policies(ptype, rules)

    def update_grouping_policy(self, old_rule, new_rule):
        """Replace a ``g`` rule."""
        with self._lock.write():
            return self._enforcer.update_grouping_policy(old_rule, new_rule)

    def update_grouping_policies(self, old_rules, new_rules):
        """Replace several ``g`` rules."""
        with self._lock.write():
            return self._enforcer.update_grouping_policies(old_rules, new_rules)

    def update_named_grouping_policy(self, ptype, old_rule, new_rule):
        """Replace a role inheritance rule of one type."""
        with self._lock.write():
            return self._enforcer.update_named_grouping_policy(ptype, old_rule, new_rule)

    def update_named_grouping_policies(self, ptype, old_rules, new_rules):
        """Replace several role inheritance rules of one type."""
        with self._lock.write():
            return self._enforcer.update_named_grouping_policies(ptype, old_rules, new_rules)

    def remove_filtered_named_grouping_policy(self, ptype, field_index, *args):
        """Remove the role inheritance rules of one type matching the filter."""
        with self._lock.write():
            return self._enforcer.remove_filtered_named_grouping_policy(
                ptype, field_index, *args
            )

    # ------------------------------------------ changes without notification

    def self_add_policy(self, sec, ptype, rule):
        """Add a rule without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_add_policy(sec, ptype, rule)

    def self_add_policies(self, sec, ptype, rules):
        """Add rules without notifying the watcher; none if any exists."""
        with self._lock.write():
            return self._enforcer.self_add_policies(sec, ptype, rules)

    def self_add_policies_ex(self, sec, ptype, rules):
        """Add the missing rules without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_add_policies_ex(sec, ptype, rules)

    def self_remove_policy(self, sec, ptype, rule):
        """Remove a rule without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_remove_policy(sec, ptype, rule)

    def self_remove_policies(self, sec, ptype, rules):
        """Remove rules without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_remove_policies(sec, ptype, rules)

    def self_remove_filtered_policy(self, sec, ptype, field_index, *args):
        """Remove filtered rules without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_remove_filtered_policy(sec, ptype, field_index, *args)

    def self_update_policy(self, sec, ptype, old_rule, new_rule):
        """Replace a rule without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_update_policy(sec, ptype, old_rule, new_rule)

    def self_update_policies(self, sec, ptype, old_rules, new_rules):
        """Replace several rules without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_update_policies(sec, ptype, old_rules, new_rules)
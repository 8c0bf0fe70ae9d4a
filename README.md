# policykit

`policykit` covers the model and policy side of a PERM-style authorization
engine, where a model is made of request, policy, role, effect and matcher
sections. It parses model text and stores policy and grouping rules. It
also gives you a management API for changing those rules and a
thread-safe wrapper around that API.

It needs nothing outside the standard library.

## Installation

```
pip install policykit
```

To run the test suite:

```
pip install "policykit[test]"
pytest
```

## Models

A model is INI-style text. The sections are `request_definition`,
`policy_definition`, `role_definition` (optional), `policy_effect` and
`matchers`. Blank lines and lines starting with `#` or `;` are skipped. A
line ending in `\` continues on the next line.

```python
from policykit.model import new_model_from_string

model = new_model_from_string("""
[request_definition]
r = sub, obj, act

[policy_definition]
p = sub, obj, act

[role_definition]
g = _, _

[policy_effect]
e = some(where (p.eft == allow))

[matchers]
m = g(r.sub, p.sub) && r.obj == p.obj && r.act == p.act
""")

model.add_policy("p", "p", ["alice", "data1", "read"])
model.has_policy("p", "p", ["alice", "data1", "read"])   # True
model.get_filtered_policy("p", "p", 1, "data1")          # [["alice", "data1", "read"]]
print(model.to_text())
```

`new_model()`, `new_model_from_file(path)` and `new_model_from_string(text)`
all create a `policykit.model.Model`. A `Model` is a `dict` that maps each
section name (`"r"`, `"p"`, `"g"`, `"e"`, `"m"`) to its assertions, which
are `policykit.assertion.Assertion` objects. It also has these rule
operations:

- `add_policy`, `add_policies`
- `remove_policy`, `remove_policies`, `remove_filtered_policy`
- `update_policy`, `update_policies`
- `get_policy`, `get_filtered_policy`
- `get_values_for_field_in_policy`
- `sort_policies_by_priority`, `sort_policies_by_subject_hierarchy`
- `copy`
- `get_field_index`

If a required section is missing, or a section or definition is unknown,
`policykit.errors.ModelError` is raised. When a required section is
missing, the message names every section that is missing.

## Managing policy

`policykit.management.ManagementEnforcer` takes either a `Model` or the
path of a model file. You can also pass these keyword arguments:
`adapter`, `watcher`, `dispatcher`, `role_managers` and
`cond_role_managers`.

```python
from policykit.management import ManagementEnforcer

enforcer = ManagementEnforcer(model)
enforcer.add_policy("bob", "data2", "write")
enforcer.add_policies_ex([["bob", "data2", "write"], ["eve", "data3", "read"]])
enforcer.get_policy()
enforcer.remove_filtered_policy(0, "bob")
enforcer.add_grouping_policy("alice", "admin")
enforcer.get_all_roles()          # ["admin"]
```

A rule can be given as separate string fields or as one list.

The change methods return a boolean:

- `add_*` returns `True` if the rule is present afterwards.
- `add_policies` and `add_named_policies` return `False` and add nothing
  if any of the rules already exists.
- `remove_*` and `update_*` return `False` if the rule they target was
  not found.
- `update_policies` undoes its partial changes when one old rule is
  missing.

The filtered removals raise `policykit.errors.InvalidFieldValuesError`
when no field value is given. An empty string in a filter matches any
value.

The `self_*` methods (`self_add_policy`, `self_remove_policies` and
others) change rules without telling the watcher.

### Collaborators

Collaborators are plain objects. The enforcer calls them by method name.

- **adapter**: `load_policy(model)` is called when the enforcer is built
  and by `load_policy()`. `save_policy(model)` is called by
  `save_policy()`. While `auto_save` is on, every change is forwarded to
  the matching adapter method, such as `add_policy`, `remove_policies` or
  `update_filtered_policies`. Adapter methods that are missing, or that
  raise `NotImplementedError`, are skipped.
- **watcher**: after a change, the enforcer calls the matching
  `update_for_*` method, for example `update_for_add_policy`. If the
  watcher does not have that method, `update()` is called instead. If the
  watcher has `set_update_callback`, it receives a callback that reloads
  the policy.
- **dispatcher**: while `auto_notify_dispatcher` is on, changes are handed
  to the dispatcher and not applied to the local model.
- **role_managers** / **cond_role_managers**: dictionaries that map a
  grouping type (such as `"g"`) to a role manager. A role manager provides
  `add_link`, `delete_link` and `clear`. Conditional role managers also
  provide `set_link_condition_func_params` and
  `set_domain_link_condition_func_params`. These managers are kept in step
  with grouping-rule changes.

### Thread-safe enforcer

`policykit.synced.SyncedEnforcer` takes the same arguments and offers the
same query and change calls. It guards them with a reader/writer lock,
which `get_lock()` returns. It can also reload policy from its adapter in
a background thread. Errors raised during a reload are ignored.

```python
from policykit.synced import SyncedEnforcer

synced = SyncedEnforcer(model, adapter=my_adapter)
synced.start_auto_load_policy(0.2)   # seconds
synced.is_auto_loading_running()     # True
synced.stop_auto_load_policy()
```

## Frontend export

`policykit.frontend.get_permission_for_user_json(enforcer, user)` returns
one line of JSON ending in a newline. The model text is under `"m"`. Every
policy rule is under `"p"` and every grouping rule is under `"g"`, each
rule prefixed with its type. The `user` argument does not filter the
rules.

## Logging

`policykit.log_util` keeps a process-wide logger. By default it is a
`policykit.logger.DefaultLogger`, which writes to the standard `logging`
logger named `policykit`. Use `set_logger` to replace it and `get_logger`
to read it. A `DefaultLogger` stays silent until `enable_log(True)` is
called. To write a logger of your own, subclass `policykit.logger.Logger`.

## Errors

Everything raised on purpose derives from `policykit.errors.PolicyError`.

## What the package does not do

The package does not:

- evaluate matchers or decide requests. There is no `enforce` call.
- ship storage adapters, watchers or role managers. You supply them as
  objects with the methods described above.
- provide a command-line tool.
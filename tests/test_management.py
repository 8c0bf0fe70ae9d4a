import pytest

from policykit.errors import InvalidFieldValuesError, ModelError
from policykit.management import ManagementEnforcer
from policykit.model import new_model_from_string

RBAC_MODEL = """
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
"""

RBAC_POLICY = [
    ["p", "alice", "data1", "read"],
    ["p", "bob", "data2", "write"],
    ["p", "data2_admin", "data2", "read"],
    ["p", "data2_admin", "data2", "write"],
    ["g", "alice", "data2_admin"],
]


class ListAdapter:
    def __init__(self, lines):
        self.lines = [list(line) for line in lines]
        self.added = []

    def load_policy(self, model):
        for ptype, *rule in self.lines:
            model.add_policy(ptype[0], ptype, rule)

    def add_policy(self, sec, ptype, rule):
        self.added.append((sec, ptype, list(rule)))


class FakeRoleManager:
    def __init__(self):
        self.links = set()

    def clear(self):
        self.links.clear()

    def add_link(self, name1, name2, *domain):
        self.links.add((name1, name2))

    def delete_link(self, name1, name2, *domain):
        self.links.discard((name1, name2))

    def roles(self, name):
        return sorted(role for user, role in self.links if user == name)

    def users(self, name):
        return sorted(user for user, role in self.links if role == name)


class RecordingWatcher:
    def __init__(self):
        self.calls = []

    def update(self):
        self.calls.append(("update",))

    def update_for_add_policy(self, sec, ptype, *rule):
        self.calls.append(("add", sec, ptype, list(rule)))


def make_enforcer(lines=RBAC_POLICY):
    rm = FakeRoleManager()
    adapter = ListAdapter(lines)
    enforcer = ManagementEnforcer(
        new_model_from_string(RBAC_MODEL), adapter, role_managers={"g": rm}
    )
    return enforcer, rm, adapter


def test_get_list():
    e, _, _ = make_enforcer()
    assert e.get_all_subjects() == ["alice", "bob", "data2_admin"]
    assert e.get_all_objects() == ["data1", "data2"]
    assert e.get_all_actions() == ["read", "write"]
    assert e.get_all_roles() == ["data2_admin"]
    assert e.get_all_named_subjects("p") == ["alice", "bob", "data2_admin"]
    assert e.get_all_named_roles("g") == ["data2_admin"]


def test_get_policy():
    e, _, _ = make_enforcer()
    assert e.get_policy() == [
        ["alice", "data1", "read"],
        ["bob", "data2", "write"],
        ["data2_admin", "data2", "read"],
        ["data2_admin", "data2", "write"],
    ]


@pytest.mark.parametrize(
    "field_index, values, expected",
    [
        (0, ["alice"], [["alice", "data1", "read"]]),
        (0, ["bob"], [["bob", "data2", "write"]]),
        (0, ["data2_admin"], [["data2_admin", "data2", "read"], ["data2_admin", "data2", "write"]]),
        (1, ["data1"], [["alice", "data1", "read"]]),
        (
            1,
            ["data2"],
            [["bob", "data2", "write"], ["data2_admin", "data2", "read"], ["data2_admin", "data2", "write"]],
        ),
        (2, ["read"], [["alice", "data1", "read"], ["data2_admin", "data2", "read"]]),
        (2, ["write"], [["bob", "data2", "write"], ["data2_admin", "data2", "write"]]),
        (
            0,
            ["data2_admin", "data2"],
            [["data2_admin", "data2", "read"], ["data2_admin", "data2", "write"]],
        ),
        (0, ["data2_admin", "", "read"], [["data2_admin", "data2", "read"]]),
        (1, ["data2", "write"], [["bob", "data2", "write"], ["data2_admin", "data2", "write"]]),
    ],
)
def test_get_filtered_policy(field_index, values, expected):
    e, _, _ = make_enforcer()
    assert e.get_filtered_policy(field_index, *values) == expected


@pytest.mark.parametrize(
    "rule, expected",
    [
        (["alice", "data1", "read"], True),
        (["bob", "data2", "write"], True),
        (["alice", "data2", "read"], False),
        (["bob", "data3", "write"], False),
    ],
)
def test_has_policy(rule, expected):
    e, _, _ = make_enforcer()
    assert e.has_policy(rule) is expected
    assert e.has_policy(*rule) is expected


def test_grouping_queries():
    e, _, _ = make_enforcer()
    assert e.get_grouping_policy() == [["alice", "data2_admin"]]
    assert e.get_filtered_grouping_policy(0, "alice") == [["alice", "data2_admin"]]
    assert e.get_filtered_grouping_policy(0, "bob") == []
    assert e.get_filtered_grouping_policy(1, "data1_admin") == []
    assert e.get_filtered_grouping_policy(1, "data2_admin") == [["alice", "data2_admin"]]
    assert e.get_filtered_grouping_policy(0, "", "data2_admin") == [["alice", "data2_admin"]]
    assert e.has_grouping_policy(["alice", "data2_admin"]) is True
    assert e.has_grouping_policy(["bob", "data2_admin"]) is False


def test_modify_policy():
    e, _, _ = make_enforcer()
    e.remove_policy("alice", "data1", "read")
    e.remove_policy("bob", "data2", "write")
    assert e.remove_policy("alice", "data1", "read") is False
    e.add_policy("eve", "data3", "read")
    e.add_policy("eve", "data3", "read")

    rules = [
        ["jack", "data4", "read"],
        ["jack", "data4", "read"],
        ["jack", "data4", "read"],
        ["katy", "data4", "write"],
        ["leyo", "data4", "read"],
        ["katy", "data4", "write"],
        ["katy", "data4", "write"],
        ["ham", "data4", "write"],
    ]
    assert e.add_policies(rules) is True
    assert e.add_policies(rules) is False
    assert e.get_policy() == [
        ["data2_admin", "data2", "read"],
        ["data2_admin", "data2", "write"],
        ["eve", "data3", "read"],
        ["jack", "data4", "read"],
        ["katy", "data4", "write"],
        ["leyo", "data4", "read"],
        ["ham", "data4", "write"],
    ]

    assert e.remove_policies(rules) is True
    assert e.remove_policies(rules) is False

    named = ["eve", "data3", "read"]
    e.remove_named_policy("p", named)
    e.add_named_policy("p", named)
    assert e.get_policy() == [
        ["data2_admin", "data2", "read"],
        ["data2_admin", "data2", "write"],
        ["eve", "data3", "read"],
    ]

    assert e.remove_filtered_policy(1, "data2") is True
    assert e.get_policy() == [["eve", "data3", "read"]]

    assert e.update_policy(["eve", "data3", "read"], ["eve", "data3", "write"]) is True
    assert e.get_policy() == [["eve", "data3", "write"]]

    e.add_policies(rules)
    e.update_policies(
        [["eve", "data3", "write"], ["leyo", "data4", "read"], ["katy", "data4", "write"]],
        [["eve", "data3", "read"], ["leyo", "data4", "write"], ["katy", "data1", "write"]],
    )
    assert e.get_policy() == [
        ["eve", "data3", "read"],
        ["jack", "data4", "read"],
        ["katy", "data1", "write"],
        ["leyo", "data4", "write"],
        ["ham", "data4", "write"],
    ]

    e.clear_policy()
    e.add_policies_ex([["user1", "data1", "read"], ["user1", "data1", "read"]])
    assert e.get_policy() == [["user1", "data1", "read"]]
    e.add_policies_ex([["user1", "data1", "read"], ["user2", "data2", "read"]])
    assert e.get_policy() == [["user1", "data1", "read"], ["user2", "data2", "read"]]
    e.add_named_policies_ex(
        "p", [["user1", "data1", "read"], ["user2", "data2", "read"], ["user3", "data3", "read"]]
    )
    assert e.get_policy() == [
        ["user1", "data1", "read"],
        ["user2", "data2", "read"],
        ["user3", "data3", "read"],
    ]
    e.self_add_policies_ex(
        "p",
        "p",
        [
            ["user1", "data1", "read"],
            ["user2", "data2", "read"],
            ["user3", "data3", "read"],
            ["user4", "data4", "read"],
        ],
    )
    assert e.get_policy() == [
        ["user1", "data1", "read"],
        ["user2", "data2", "read"],
        ["user3", "data3", "read"],
        ["user4", "data4", "read"],
    ]


def test_update_policies_rolls_back_on_missing_rule():
    e, _, _ = make_enforcer()
    result = e.update_policies(
        [["alice", "data1", "read"], ["nobody", "data9", "read"]],
        [["alice", "data1", "write"], ["nobody", "data9", "write"]],
    )
    assert result is False
    assert e.has_policy("alice", "data1", "read") is True
    assert e.has_policy("alice", "data1", "write") is False


def test_modify_grouping_policy():
    e, rm, _ = make_enforcer()
    assert rm.roles("alice") == ["data2_admin"]
    assert rm.roles("bob") == []

    e.remove_grouping_policy("alice", "data2_admin")
    e.add_grouping_policy("bob", "data1_admin")
    e.add_grouping_policy("eve", "data3_admin")

    grouping_rules = [["ham", "data4_admin"], ["jack", "data5_admin"]]
    e.add_grouping_policies(grouping_rules)
    assert rm.roles("ham") == ["data4_admin"]
    assert rm.roles("jack") == ["data5_admin"]
    e.remove_grouping_policies(grouping_rules)
    assert rm.roles("alice") == []

    named = ["alice", "data2_admin"]
    e.add_named_grouping_policy("g", named)
    assert rm.roles("alice") == ["data2_admin"]
    e.remove_named_grouping_policy("g", named)

    assert e.add_named_grouping_policies("g", grouping_rules) is True
    assert e.add_named_grouping_policies("g", grouping_rules) is False
    assert rm.roles("ham") == ["data4_admin"]
    assert rm.roles("jack") == ["data5_admin"]
    assert e.remove_named_grouping_policies("g", grouping_rules) is True
    assert e.remove_named_grouping_policies("g", grouping_rules) is False

    assert rm.roles("alice") == []
    assert rm.roles("bob") == ["data1_admin"]
    assert rm.roles("eve") == ["data3_admin"]
    assert rm.users("data1_admin") == ["bob"]
    assert rm.users("data2_admin") == []
    assert rm.users("data3_admin") == ["eve"]

    e.remove_filtered_grouping_policy(0, "bob")
    assert rm.roles("bob") == []
    assert rm.users("data1_admin") == []
    assert rm.users("data3_admin") == ["eve"]

    e.add_grouping_policy("data3_admin", "data4_admin")
    e.update_grouping_policy(["eve", "data3_admin"], ["eve", "admin"])
    e.update_grouping_policy(["data3_admin", "data4_admin"], ["admin", "data4_admin"])
    assert rm.users("data4_admin") == ["admin"]
    assert rm.users("admin") == ["eve"]
    assert rm.roles("eve") == ["admin"]
    assert rm.roles("admin") == ["data4_admin"]

    e.update_grouping_policies([["eve", "admin"]], [["eve", "admin_groups"]])
    e.update_grouping_policies([["admin", "data4_admin"]], [["admin", "data5_admin"]])
    assert rm.users("data5_admin") == ["admin"]
    assert rm.users("admin_groups") == ["eve"]
    assert rm.roles("admin") == ["data5_admin"]
    assert rm.roles("eve") == ["admin_groups"]

    e.clear_policy()
    e.add_grouping_policies_ex([["user1", "member"]])
    assert rm.users("member") == ["user1"]
    e.add_grouping_policies_ex([["user1", "member"], ["user2", "member"]])
    assert rm.users("member") == ["user1", "user2"]
    e.add_named_grouping_policies_ex(
        "g", [["user1", "member"], ["user2", "member"], ["user3", "member"]]
    )
    assert rm.users("member") == ["user1", "user2", "user3"]


def test_self_operations_skip_watcher():
    e, _, _ = make_enforcer()
    watcher = RecordingWatcher()
    e.set_watcher(watcher)
    e.self_add_policy("p", "p", ["carol", "data3", "read"])
    assert watcher.calls == []
    e.add_policy("dave", "data3", "read")
    assert watcher.calls == [("add", "p", "p", ["dave", "data3", "read"])]
    assert e.self_remove_policy("p", "p", ["carol", "data3", "read"]) is True
    assert e.self_update_policy("p", "p", ["dave", "data3", "read"], ["dave", "data3", "write"]) is True
    assert e.has_policy("dave", "data3", "write") is True
    assert e.self_remove_filtered_policy("p", "p", 0, "dave") is True
    assert e.get_filtered_policy(0, "dave") == []


def test_add_policy_is_persisted_through_adapter():
    e, _, adapter = make_enforcer()
    e.add_policy("eve", "data3", "read")
    assert adapter.added == [("p", "p", ["eve", "data3", "read"])]


def test_remove_filtered_without_values_raises():
    e, _, _ = make_enforcer()
    with pytest.raises(InvalidFieldValuesError):
        e.remove_filtered_policy(0)


def test_update_policies_length_mismatch_raises():
    e, _, _ = make_enforcer()
    with pytest.raises(ModelError):
        e.update_policies([["alice", "data1", "read"]], [])


def test_unknown_policy_type_raises():
    e, _, _ = make_enforcer()
    with pytest.raises(ModelError):
        e.get_named_policy("p9")


def test_bad_rule_params_raise():
    e, _, _ = make_enforcer()
    with pytest.raises(ValueError):
        e.has_policy()
    with pytest.raises(TypeError):
        e.add_policy("alice", 3, "read")
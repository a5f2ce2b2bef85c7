"""The pure fold over the log must agree with the database views."""

from hypothesis import given, settings, strategies as st

from envelope.storage.db import EnvelopeDb, SortKey
from envelope.storage.derive import active_environments, current_values
from envelope.utils.dataModels import ActiveVariable, VariableEvent

envs = st.sampled_from(["dev", "prod"])
keys = st.sampled_from(["A", "B", "C"])
values = st.text(alphabet="xyz", max_size=3)
operations = st.lists(
    st.one_of(
        st.tuples(st.just("insert"), envs, keys, values),
        st.tuples(st.just("delete"), envs, keys, st.none()),
        st.tuples(st.just("revert"), envs, keys, st.none()),
        st.tuples(st.just("tick"), st.none(), st.none(), st.integers(min_value=-2, max_value=2)),
    ),
    max_size=30,
)


class Ticker:
    def __init__(self):
        self.now = 1_000

    def __call__(self):
        return self.now


@given(operations)
@settings(deadline=None, max_examples=200)
def test_fold_matches_active_view(ops):
    """
    Given any sequence of inserts, soft deletes, reverts and clock jumps
    When the log is folded in Python and queried through the views
    Then both agree on the current value of every (env, key)
    """
    clock = Ticker()
    with EnvelopeDb(":memory:", clock=clock) as db:
        for op, env, key, arg in ops:
            if op == "insert":
                db.insert(env, key, arg)
            elif op == "delete":
                db.soft_delete(env, key)
            elif op == "revert":
                db.revert(env, key)
            else:
                clock.now += arg

        from_view = sorted(
            (v.env, v.key, v.value) for env in ("dev", "prod") for v in db.list_active(env, SortKey.KEY)
        )
        folded = [(v.env, v.key, v.value) for v in current_values(db.events())]
        assert folded == from_view


class TestCurrentValues:
    def test_later_row_wins_on_equal_timestamp(self):
        events = [
            VariableEvent("dev", "A", "1", 5),
            VariableEvent("dev", "A", "2", 5),
        ]
        assert current_values(events) == [ActiveVariable("dev", "A", "2", 5)]

    def test_tombstone_hides_key(self):
        events = [
            VariableEvent("dev", "A", "1", 5),
            VariableEvent("dev", "A", None, 6),
            VariableEvent("dev", "B", "2", 6),
        ]
        assert current_values(events) == [ActiveVariable("dev", "B", "2", 6)]


class TestActiveEnvironments:
    def test_all_matching_is_active(self):
        """
        Given dev {A:1, B:2} and prod {A:9}
        When the snapshot holds A=1 and B=2
        Then only dev is reported
        """
        variables = [
            ActiveVariable("dev", "A", "1", 0),
            ActiveVariable("dev", "B", "2", 0),
            ActiveVariable("prod", "A", "9", 0),
        ]
        assert active_environments(variables, {"A": "1", "B": "2"}) == {"dev"}

    def test_one_mismatch_excludes_env(self):
        variables = [
            ActiveVariable("dev", "A", "1", 0),
            ActiveVariable("dev", "B", "2", 0),
        ]
        assert active_environments(variables, {"A": "1", "B": "other"}) == set()

    def test_missing_variable_excludes_env(self):
        variables = [
            ActiveVariable("dev", "A", "1", 0),
            ActiveVariable("dev", "B", "2", 0),
        ]
        assert active_environments(variables, {"A": "1"}) == set()

    def test_empty_snapshot(self):
        assert active_environments([ActiveVariable("dev", "A", "1", 0)], {}) == set()

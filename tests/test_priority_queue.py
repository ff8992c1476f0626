import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from prm_nav.errors import EmptyQueueError
from prm_nav.planning.queue import PriorityQueue, SearchNode


def _node(node_id: int, depth: float, parent=None) -> SearchNode:
    return SearchNode(None, depth, parent, node_id)


def test_pop_returns_lowest_depth_first() -> None:
    q = PriorityQueue()
    for node_id, depth in [(1, 3.0), (2, 1.0), (3, 2.0)]:
        q.push(_node(node_id, depth))

    assert q.peek().node_id == 2
    assert [q.pop().node_id for _ in range(3)] == [2, 3, 1]
    assert q.is_empty()


def test_pop_and_peek_on_empty_queue_raise() -> None:
    q = PriorityQueue()
    with pytest.raises(EmptyQueueError):
        q.pop()
    with pytest.raises(EmptyQueueError):
        q.peek()
    # still usable as an IndexError
    with pytest.raises(IndexError):
        q.pop()


def test_capacity_doubles_on_overflow() -> None:
    q = PriorityQueue(capacity=2)
    for i in range(5):
        q.push(_node(i, float(5 - i)))
    assert q.capacity == 8
    assert len(q) == 5
    assert q.pop().node_id == 4


def test_push_duplicate_id_rejected() -> None:
    q = PriorityQueue()
    q.push(_node(7, 1.0))
    with pytest.raises(ValueError):
        q.push(_node(7, 0.5))


def test_contains_tracks_push_and_pop() -> None:
    q = PriorityQueue()
    q.push(_node(1, 1.0))
    q.push(_node(2, 2.0))
    assert q.contains(1) and q.contains(2)
    q.pop()
    assert not q.contains(1)
    assert q.get(2) is not None and q.get(1) is None


def test_reparent_moves_node_forward() -> None:
    q = PriorityQueue()
    q.push(_node(1, 1.0))
    q.push(_node(2, 5.0))
    parent = _node(9, 0.0)

    assert q.reparent(2, parent, 0.5)
    node = q.pop()
    assert node.node_id == 2
    assert node.depth == pytest.approx(0.5)
    assert node.parent == 9


def test_reparent_rejects_equal_or_worse_and_unknown() -> None:
    q = PriorityQueue()
    q.push(_node(1, 2.0, parent=4))
    parent = _node(9, 1.0)

    assert not q.reparent(1, parent, 1.0)
    assert not q.reparent(1, parent, 3.0)
    assert not q.reparent(42, parent, 0.0)
    node = q.get(1)
    assert node.depth == 2.0 and node.parent == 4


_ops = st.lists(
    st.one_of(
        st.tuples(st.just("push"), st.floats(min_value=0, max_value=100)),
        st.tuples(st.just("reparent"), st.floats(min_value=0, max_value=100)),
        st.tuples(st.just("pop"), st.just(0.0)),
    ),
    max_size=60,
)


@settings(max_examples=25, deadline=None)
@given(_ops, st.data())
def test_pop_order_and_reparent_monotonicity(ops, data) -> None:
    """Pops never go below the last popped depth; reparent never raises depth."""

    q = PriorityQueue(capacity=1)
    next_id = 0
    last_popped = -1.0
    for op, value in ops:
        if op == "push":
            # new entries never undercut the already popped frontier
            q.push(_node(next_id, last_popped + 1.0 + value))
            next_id += 1
        elif op == "reparent" and len(q):
            target = data.draw(st.sampled_from(sorted(q._slots)))
            before = q.get(target).depth
            parent = _node(-1, max(last_popped, 0.0))
            moved = q.reparent(target, parent, value)
            after = q.get(target).depth
            assert after <= before
            assert moved == (after < before)
        elif op == "pop" and len(q):
            node = q.pop()
            assert node.depth >= last_popped
            last_popped = node.depth

    depths = []
    while not q.is_empty():
        depths.append(q.pop().depth)
    assert depths == sorted(depths)

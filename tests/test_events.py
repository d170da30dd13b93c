import pytest

from aml.events import (
    Environment,
    Node,
    NodeType,
    format_node,
    insert_sorted,
    merge_events,
    sort_events,
)


def _nodes(*starts):
    return [Node(type=NodeType.NOTE, start=s, note=i) for i, s in enumerate(starts)]


def _starts(events):
    return [e.start for e in events]


def test_nodes_get_distinct_serial_numbers():
    a, b = Node(), Node()
    assert b.n > a.n


def test_environment_defaults():
    env = Environment()
    assert (env.octave, env.duty, env.transpose) == (4, 90, 64)
    assert env.key == [0] * 7
    assert env.duration == 1.0 and env.volume == 1.0


def test_environment_copy_is_independent():
    env = Environment()
    other = env.copy()
    other.key[2] = 1
    other.octave = 5
    assert env.key[2] == 0
    assert env.octave == 4
    assert other.key[2] == 1


def test_insert_into_empty():
    events = []
    node = Node(start=2.0)
    insert_sorted(events, node)
    assert events == [node]


@pytest.mark.parametrize("start, index", [(0.5, 0), (1.0, 1), (1.5, 1), (3.0, 3), (9.0, 3)])
def test_insert_position(start, index):
    events = _nodes(1.0, 2.0, 3.0)
    node = Node(start=start)
    insert_sorted(events, node)
    assert events.index(node) == index
    assert _starts(events) == sorted(_starts(events))


def test_insert_is_stable_after_equal_starts():
    events = _nodes(1.0, 1.0, 2.0)
    node = Node(start=1.0)
    insert_sorted(events, node)
    assert events[2] is node


def test_insert_into_singleton():
    events = _nodes(2.0)
    earlier = Node(start=1.0)
    insert_sorted(events, earlier)
    assert events[0] is earlier
    same = Node(start=2.0)
    insert_sorted(events, same)
    assert events[-1] is same


def test_merge_interleaves_by_start():
    first = _nodes(0.0, 2.0, 4.0)
    second = _nodes(1.0, 3.0, 5.0)
    merged = merge_events(first, second)
    assert _starts(merged) == sorted(_starts(first + second))
    assert len(merged) == 6


def test_merge_ties_keep_first_list_first():
    first = _nodes(0.0, 1.0)
    second = _nodes(1.0)
    merged = merge_events(first, second)
    assert merged == [first[0], first[1], second[0]]


def test_merge_keeps_head_of_first():
    first = _nodes(2.0, 3.0)
    second = _nodes(1.0)
    merged = merge_events(first, second)
    assert merged[0] is first[0]
    assert merged[1] is second[0]


def test_merge_with_empty():
    events = _nodes(1.0, 2.0)
    assert merge_events([], events) == events
    assert merge_events(events, []) == events


def test_merge_does_not_mutate_inputs():
    first = _nodes(0.0, 2.0)
    second = _nodes(1.0)
    merge_events(first, second)
    assert len(first) == 2 and len(second) == 1


def test_sort_is_stable():
    events = _nodes(2.0, 1.0, 2.0, 0.0, 1.0)
    result = sort_events(events)
    assert _starts(result) == sorted(_starts(events))
    ones = [e for e in result if e.start == 1.0]
    assert ones == [events[1], events[4]]


def test_format_node_contains_fields():
    node = Node(type=NodeType.NOTE, start=1.5, duration=0.5, volume=1.0, duty=90, channel=2, note=60)
    text = format_node(node)
    assert text.startswith(f"{node.n}: note")
    assert "s=1.500000" in text
    assert "n= 60" in text
    assert "c= 2" in text
import pytest

from build_network import Record, build, reciprocal


@pytest.fixture
def cosponsor_records():
    """B1 和 B2 方向相反但都是 A-B 合作"""
    return [
        Record("B1", "A", "B"),
        Record("B2", "B", "A"),
        Record("B3", "A", "C"),
    ]


@pytest.fixture
def path_graph():
    """A - B - C - D"""
    return build([
        Record("d1", "A", "B"),
        Record("d2", "B", "C"),
        Record("d3", "C", "D"),
    ])


@pytest.fixture
def disjoint_graph():
    """A - B    C - D"""
    return build([
        Record("d1", "A", "B"),
        Record("d2", "C", "D"),
    ])


@pytest.fixture
def star_graph():
    """X 为中心，P / Q / R 为叶子"""
    return build([
        Record("d1", "X", "P"),
        Record("d1", "X", "Q"),
        Record("d1", "X", "R"),
    ])


@pytest.fixture
def triangle_records():
    """A-B 合作 1 次，A-C 和 C-B 各合作 3 次"""
    records = [Record("d1", "A", "B")]
    records += [Record(f"ac{i}", "A", "C") for i in range(3)]
    records += [Record(f"cb{i}", "C", "B") for i in range(3)]
    return records


@pytest.fixture
def weighted_triangle(triangle_records):
    return build(triangle_records, weight_fn=reciprocal)

"""网络指标测试"""

import math

import numpy as np
import pandas as pd
import pytest

from build_network import CollaborationGraph, Record, build
from calculate_network_parameters import (
    betweenness_centrality,
    closeness_centrality,
    count_components,
    degree_centrality,
    distances,
    edge_density,
    eigenvector_centrality,
    main,
    mean_distance,
    metrics_table,
    network_summary,
    path_length,
    save_metrics,
    shortest_path,
    top_nodes,
)
from network_errors import (
    ConvergenceError,
    EmptyGraphError,
    NodeNotFoundError,
    NoPathError,
)


def complete_graph(names):
    records = []
    for i, a in enumerate(names):
        for b in names[i + 1:]:
            records.append(Record(f"{a}{b}", a, b))
    return build(records)


class TestShortestPath:

    def test_path_graph(self, path_graph):
        assert shortest_path(path_graph, "A", "D") == ["A", "B", "C", "D"]
        assert shortest_path(path_graph, "D", "A") == ["D", "C", "B", "A"]

    def test_same_node(self, path_graph):
        assert shortest_path(path_graph, "B", "B") == ["B"]

    def test_weighted_prefers_frequent_collaborators(self, triangle_records, weighted_triangle):
        """A-C-B 长度 1/3 + 1/3，比直连的 A-B 短"""
        assert shortest_path(build(triangle_records), "A", "B") == ["A", "B"]
        assert shortest_path(weighted_triangle, "A", "B") == ["A", "C", "B"]

    def test_length_matches_distance(self, weighted_triangle):
        path = shortest_path(weighted_triangle, "A", "B")
        assert path_length(weighted_triangle, path) == pytest.approx(2 / 3)
        assert path_length(weighted_triangle, path) == pytest.approx(distances(weighted_triangle).loc["A", "B"])

    def test_no_path(self, disjoint_graph):
        with pytest.raises(NoPathError) as excinfo:
            shortest_path(disjoint_graph, "A", "C")
        assert (excinfo.value.source, excinfo.value.target) == ("A", "C")

    def test_unknown_node(self, path_graph):
        with pytest.raises(NodeNotFoundError):
            shortest_path(path_graph, "A", "Z")
        with pytest.raises(KeyError):
            shortest_path(path_graph, "Z", "A")

    def test_hop_count_length(self, path_graph):
        assert path_length(path_graph, ["A", "B", "C"]) == 2


class TestDistances:

    def test_path_graph_matrix(self, path_graph):
        matrix = distances(path_graph)

        assert list(matrix.index) == ["A", "B", "C", "D"]
        assert list(matrix.columns) == ["A", "B", "C", "D"]
        assert matrix.loc["A", "D"] == 3
        assert matrix.loc["B", "D"] == 2

    @pytest.mark.parametrize("fixture", ["path_graph", "disjoint_graph", "star_graph", "weighted_triangle"])
    def test_symmetric_zero_diagonal(self, fixture, request):
        matrix = distances(request.getfixturevalue(fixture)).to_numpy()

        assert np.array_equal(matrix, matrix.T)
        assert np.all(np.diag(matrix) == 0)

    def test_connected_implies_finite(self, path_graph, weighted_triangle):
        for graph in (path_graph, weighted_triangle):
            assert count_components(graph) == 1
            assert np.isfinite(distances(graph).to_numpy()).all()

    def test_unreachable_is_infinite(self, disjoint_graph):
        assert math.isinf(distances(disjoint_graph).loc["A", "C"])

    def test_empty_graph(self):
        matrix = distances(build([]))
        assert isinstance(matrix, pd.DataFrame)
        assert matrix.shape == (0, 0)


class TestGlobalMetrics:

    def test_path_graph(self, path_graph):
        assert mean_distance(path_graph) == pytest.approx(10 / 6)
        assert count_components(path_graph) == 1
        assert edge_density(path_graph) == pytest.approx(0.5)

    def test_disjoint_graph(self, disjoint_graph):
        """不同连通分量的节点对不计入平均值"""
        assert count_components(disjoint_graph) == 2
        assert mean_distance(disjoint_graph) == pytest.approx(1.0)

    def test_weighted_mean_distance(self, weighted_triangle):
        # A-B = 2/3 (via C), A-C = 1/3, B-C = 1/3
        assert mean_distance(weighted_triangle) == pytest.approx((2 / 3 + 1 / 3 + 1 / 3) / 3)

    def test_density_small_graphs(self):
        assert edge_density(build([])) == 0.0
        assert edge_density(CollaborationGraph({"A"}, {}, {})) == 0.0

    def test_density_complete_graph(self):
        for names in (["A", "B"], ["A", "B", "C"], ["A", "B", "C", "D", "E"]):
            assert edge_density(complete_graph(names)) == pytest.approx(1.0)

    def test_density_grows_with_edges(self):
        records = [Record("d1", "A", "B"), Record("d2", "C", "D")]
        sparse = build(records)
        denser = build(records + [Record("d3", "B", "C")])
        assert edge_density(denser) > edge_density(sparse)

    def test_components_empty_and_singleton(self):
        assert count_components(build([])) == 0
        assert count_components(CollaborationGraph({"A"}, {}, {})) == 1

    def test_mean_distance_special_cases(self):
        with pytest.raises(EmptyGraphError):
            mean_distance(build([]))
        assert mean_distance(CollaborationGraph({"A"}, {}, {})) == 0.0

    def test_summary(self, disjoint_graph):
        summary = network_summary(disjoint_graph)
        assert summary == {
            "nodes": 4,
            "edges": 2,
            "components": 2,
            "density": pytest.approx(2 / 6),
            "mean_distance": pytest.approx(1.0),
        }

    def test_summary_empty(self):
        assert network_summary(build([]))["mean_distance"] is None


class TestCentrality:

    def test_star_degree(self, star_graph):
        degree = degree_centrality(star_graph)
        assert degree == {"P": 1, "Q": 1, "R": 1, "X": 3}

    def test_star_betweenness(self, star_graph):
        betweenness = betweenness_centrality(star_graph)

        assert betweenness["X"] > 0
        assert betweenness["X"] == pytest.approx(3.0)
        for leaf in ("P", "Q", "R"):
            assert betweenness[leaf] == 0

    def test_betweenness_splits_ties(self):
        """正方形 A-B-D、A-C-D：两条 A-D 路径各分一半"""
        graph = build([
            Record("d1", "A", "B"), Record("d2", "B", "D"),
            Record("d3", "A", "C"), Record("d4", "C", "D"),
        ])
        betweenness = betweenness_centrality(graph)
        assert betweenness["B"] == pytest.approx(0.5)
        assert betweenness["C"] == pytest.approx(0.5)

    def test_closeness_path_graph(self, path_graph):
        raw = closeness_centrality(path_graph)
        normalized = closeness_centrality(path_graph, normalized=True)

        assert raw["A"] == pytest.approx(1 / 6)
        assert raw["B"] == pytest.approx(1 / 4)
        assert normalized["A"] == pytest.approx(3 / 6)
        assert normalized["B"] == pytest.approx(3 / 4)

    def test_closeness_within_component(self, disjoint_graph):
        closeness = closeness_centrality(disjoint_graph, normalized=True)
        assert closeness == pytest.approx({"A": 1.0, "B": 1.0, "C": 1.0, "D": 1.0})

    def test_closeness_isolated_node(self):
        assert closeness_centrality(CollaborationGraph({"A"}, {}, {})) == {"A": 0.0}

    def test_eigenvector_star(self, star_graph):
        scores = eigenvector_centrality(star_graph)

        assert scores["X"] == pytest.approx(1 / math.sqrt(2), rel=1e-3)
        for leaf in ("P", "Q", "R"):
            assert scores[leaf] == pytest.approx(1 / math.sqrt(6), rel=1e-3)
        assert sum(v * v for v in scores.values()) == pytest.approx(1.0, rel=1e-6)
        assert all(v >= 0 for v in scores.values())

    def test_eigenvector_not_converged(self, star_graph):
        with pytest.raises(ConvergenceError):
            eigenvector_centrality(star_graph, max_iter=1)

    def test_eigenvector_weighted_uses_counts(self, weighted_triangle):
        """加权图中合作次数多的 C 中心性最高，而不是被 1/n 边权压低"""
        scores = eigenvector_centrality(weighted_triangle)

        assert scores["C"] > scores["A"]
        assert scores["A"] == pytest.approx(scores["B"], rel=1e-3)
        assert scores["C"] / scores["A"] == pytest.approx(12 / (1 + math.sqrt(73)), rel=1e-3)

    @pytest.mark.parametrize("metric", [
        degree_centrality,
        closeness_centrality,
        betweenness_centrality,
        eigenvector_centrality,
    ])
    def test_empty_graph(self, metric):
        with pytest.raises(EmptyGraphError):
            metric(build([]))


class TestTables:

    def test_metrics_table(self, star_graph):
        table = metrics_table(star_graph)

        assert list(table.columns) == ["node", "degree", "closeness", "betweenness", "eigenvector"]
        assert list(table["node"]) == ["P", "Q", "R", "X"]
        assert table.set_index("node").loc["X", "degree"] == 3

    def test_metrics_table_without_eigenvector(self, path_graph):
        assert "eigenvector" not in metrics_table(path_graph, eigenvector=False).columns

    def test_top_nodes(self):
        scores = {"B": 2.0, "A": 2.0, "C": 5.0, "D": 1.0}
        assert top_nodes(scores, 3) == [("C", 5.0), ("A", 2.0), ("B", 2.0)]

    def test_save_metrics(self, star_graph, tmp_path):
        path = save_metrics(metrics_table(star_graph), tmp_path)
        assert len(pd.read_parquet(path)) == 4

    def test_cli(self, tmp_path, capsys):
        path = tmp_path / "cosponsors.csv"
        pd.DataFrame({
            "bill": ["B1", "B2", "B3"],
            "sponsor": ["A", "B", "C"],
            "cosponsor": ["B", "C", "D"],
        }).to_csv(path, index=False)

        main([str(path), "--results-dir", str(tmp_path / "out"), "--top", "2"])

        metrics = pd.read_parquet(tmp_path / "out" / "collaboration_metrics.parquet")
        assert list(metrics["node"]) == ["A", "B", "C", "D"]
        assert "Top 2 betweenness" in capsys.readouterr().out

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
基于合作网络计算网络指标
输入：记录文件（见 build_network.py）
输出：results/collaboration_metrics.parquet

无权图的路径长度按跳数计算，加权图按边权之和计算。
图不连通时：
  - mean_distance 只统计连通的节点对
  - closeness 只在节点所在的连通分量内计算
调用方应先确认 count_components(graph) == 1 再解读平均距离。
"""

import os
import sys
import argparse

import networkx as nx
import numpy as np
import pandas as pd
from colorama import init, Fore

from build_network import add_build_arguments, build_from_args
from network_errors import (
    ConvergenceError,
    EmptyGraphError,
    NetworkError,
    NodeNotFoundError,
    NoPathError,
)

init(autoreset=True)

RESULTS_DIR = "./results"
METRICS_FILE = "collaboration_metrics.parquet"
DEFAULT_TOP_N = 10
EIGENVECTOR_MAX_ITER = 100
EIGENVECTOR_TOL = 1.0e-6


# ------------------ 工具函数 ------------------
def _weights(graph):
    return "weight" if graph.weighted else None


def _require_nodes(graph, metric):
    if len(graph.nodes) == 0:
        raise EmptyGraphError(f"空图无法计算 {metric}")


def _index_of(graph, node):
    if node not in graph:
        raise NodeNotFoundError(node)
    return graph.nodes.index(node)


def _distance_array(graph):
    g = graph.to_igraph()
    return np.array(g.distances(weights=_weights(graph)), dtype=float).reshape(len(graph.nodes), len(graph.nodes))


# ------------------ 路径 ------------------
def shortest_path(graph, u, v):
    """Dijkstra 最短路径，返回节点名列表（含两端）。相同长度的路径任取其一"""
    src = _index_of(graph, u)
    dst = _index_of(graph, v)
    if src == dst:
        return [u]

    g = graph.to_igraph()
    membership = g.connected_components().membership
    if membership[src] != membership[dst]:
        raise NoPathError(u, v)

    vpath = g.get_shortest_paths(src, to=dst, weights=_weights(graph), output="vpath")[0]
    return [graph.nodes[i] for i in vpath]


def path_length(graph, path):
    """路径总长度：加权图为边权之和，无权图为跳数"""
    if not graph.weighted:
        return len(path) - 1
    return sum(graph.weight(a, b) for a, b in zip(path, path[1:]))


def distances(graph):
    """全源最短路径矩阵，行列都是节点名，不可达为 inf"""
    matrix = _distance_array(graph) if graph.nodes else np.zeros((0, 0))
    return pd.DataFrame(matrix, index=list(graph.nodes), columns=list(graph.nodes))


def mean_distance(graph):
    """所有连通无序节点对的平均最短距离；没有连通节点对时为 0"""
    _require_nodes(graph, "mean_distance")
    matrix = _distance_array(graph)
    upper = matrix[np.triu_indices(len(graph.nodes), k=1)]
    connected = upper[np.isfinite(upper)]
    if connected.size == 0:
        return 0.0
    return float(connected.mean())


# ------------------ 全局指标 ------------------
def count_components(graph):
    if len(graph.nodes) == 0:
        return 0
    return len(graph.to_igraph().connected_components())


def edge_density(graph):
    n = len(graph.nodes)
    if n <= 1:
        return 0.0
    return graph.edge_count() / (n * (n - 1) / 2)


# ------------------ 中心性 ------------------
def degree_centrality(graph):
    _require_nodes(graph, "degree")
    g = graph.to_igraph()
    return dict(zip(graph.nodes, g.degree()))


def closeness_centrality(graph, normalized=False):
    """
    1 / (到同一连通分量内其他节点的距离之和)。
    normalized 时再乘以可达节点数（不含自身）。孤立节点为 0。
    """
    _require_nodes(graph, "closeness")
    matrix = _distance_array(graph)
    closeness = {}
    for i, node in enumerate(graph.nodes):
        row = np.delete(matrix[i], i)
        reachable = row[np.isfinite(row)]
        total = reachable.sum()
        if reachable.size == 0 or total == 0:
            closeness[node] = 0.0
            continue
        value = 1.0 / total
        if normalized:
            value *= reachable.size
        closeness[node] = float(value)
    return closeness


def betweenness_centrality(graph):
    """Brandes 算法，无序节点对只计一次，等长最短路径平分贡献"""
    _require_nodes(graph, "betweenness")
    g = graph.to_igraph()
    return dict(zip(graph.nodes, (float(b) for b in g.betweenness(directed=False, weights=_weights(graph)))))


def eigenvector_centrality(graph, max_iter=EIGENVECTOR_MAX_ITER, tol=EIGENVECTOR_TOL):
    """
    邻接矩阵的主特征向量，幂迭代求解，结果为单位欧氏范数、非负。
    加权图按共同出现次数 count 作为连接强度（边权是距离，不能当强度用）。
    max_iter 次迭代内不收敛时抛出 ConvergenceError。
    """
    _require_nodes(graph, "eigenvector")
    try:
        scores = nx.eigenvector_centrality(graph.to_networkx(), max_iter=max_iter, tol=tol,
                                           weight="count" if graph.weighted else None)
    except nx.PowerIterationFailedConvergence as exc:
        raise ConvergenceError(f"特征向量中心性在 {max_iter} 次迭代内未收敛") from exc
    return {node: abs(float(scores[node])) for node in graph.nodes}


# ------------------ 指标表 ------------------
def metrics_table(graph, normalized=True, eigenvector=True, verbose=False):
    """每个节点一行：degree / closeness / betweenness / eigenvector"""
    def step(name):
        if verbose:
            print(Fore.BLUE + f"计算 {name} ...")

    metrics = {"node": list(graph.nodes)}
    step("Degree")
    degree = degree_centrality(graph)
    metrics["degree"] = [degree[n] for n in graph.nodes]

    step("Closeness")
    closeness = closeness_centrality(graph, normalized=normalized)
    metrics["closeness"] = [closeness[n] for n in graph.nodes]

    step("Betweenness")
    betweenness = betweenness_centrality(graph)
    metrics["betweenness"] = [betweenness[n] for n in graph.nodes]

    if eigenvector:
        step("Eigenvector")
        scores = eigenvector_centrality(graph)
        metrics["eigenvector"] = [scores[n] for n in graph.nodes]

    return pd.DataFrame(metrics)


def top_nodes(scores, n=DEFAULT_TOP_N):
    """按分数降序取前 n 个，同分按节点名排序"""
    return sorted(scores.items(), key=lambda item: (-item[1], item[0]))[:n]


def network_summary(graph):
    return {
        "nodes": len(graph.nodes),
        "edges": graph.edge_count(),
        "components": count_components(graph),
        "density": edge_density(graph),
        "mean_distance": mean_distance(graph) if graph.nodes else None,
    }


# ------------------ 保存指标 ------------------
def save_metrics(frame, results_dir=RESULTS_DIR, filename=METRICS_FILE):
    results_dir = os.fspath(results_dir)
    os.makedirs(results_dir, exist_ok=True)
    metrics_path = os.path.join(results_dir, filename)
    frame.to_parquet(metrics_path, index=False)
    print(Fore.GREEN + f"✅ 指标保存完成: {metrics_path}")
    return metrics_path


# ------------------ 主函数 ------------------
def main(argv=None):
    parser = add_build_arguments(argparse.ArgumentParser(description="计算合作网络指标"))
    parser.add_argument("--top", type=int, default=DEFAULT_TOP_N, help="每个指标显示前 N 个节点")
    args = parser.parse_args(argv)

    try:
        graph = build_from_args(args)
        _require_nodes(graph, "metrics")
    except (NetworkError, FileNotFoundError, ValueError) as exc:
        print(Fore.RED + f"构建失败: {exc}")
        sys.exit(1)

    summary = network_summary(graph)
    print(Fore.GREEN + f"节点数 {summary['nodes']}, 边数 {summary['edges']}, 密度 {summary['density']:.6f}")
    if summary["components"] != 1:
        print(Fore.YELLOW + f"网络有 {summary['components']} 个连通分量，平均距离只统计连通的节点对")
    print(Fore.GREEN + f"平均最短距离: {summary['mean_distance']:.4f}")

    try:
        metrics = metrics_table(graph, verbose=True)
    except ConvergenceError as exc:
        print(Fore.YELLOW + f"{exc}，指标表中不含 eigenvector")
        metrics = metrics_table(graph, eigenvector=False)

    for column in metrics.columns[1:]:
        scores = dict(zip(metrics["node"], metrics[column]))
        print(Fore.BLUE + f"\nTop {args.top} {column}:")
        for node, score in top_nodes(scores, args.top):
            print(f"  {node}: {score:.4f}")

    save_metrics(metrics, args.results_dir)


if __name__ == "__main__":
    main()

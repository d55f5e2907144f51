#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
构建参与者-参与者合作网络（联署网络）
输入：记录表 (document_id, principal, participant)，例如 bill / sponsor / cosponsor
输出：
  - results/collaboration_edges.parquet  (source, target, count, weight)
  - results/collaboration_nodes.parquet  (node, degree, documents)
  - results/collaboration_graph.graphml / collaboration_graph.gexf
"""

import os
import sys
import math
import numbers
import argparse
from collections import Counter, namedtuple
from types import MappingProxyType

import igraph as ig
import networkx as nx
import pandas as pd
from tqdm import tqdm
from colorama import init, Fore

from network_errors import InvalidRecordError, NetworkError

init(autoreset=True)

RESULTS_DIR = "./results"
INPUT_FILE = "./cosponsorships.csv"
DOCUMENT_COL = "bill"
PRINCIPAL_COL = "sponsor"
PARTICIPANT_COL = "cosponsor"
EDGES_FILE = "collaboration_edges.parquet"
NODES_FILE = "collaboration_nodes.parquet"
GRAPHML_FILE = "collaboration_graph.graphml"
GEXF_FILE = "collaboration_graph.gexf"

Record = namedtuple("Record", ["document_id", "principal", "participant"])


# ------------------ 合作网络 ------------------
class CollaborationGraph:
    """
    去重后的无向合作网络（不可变）。

    nodes     排好序的节点元组
    weights   规范边 (a, b), a < b -> 边权
    counts    规范边 -> 共同出现的文档数 n
    weighted  False 时路径长度按跳数计算，True 时按边权求和
    documents 节点 -> 保留下来的文档中该节点出现的次数
    rejected  构建时被跳过的无效记录
    """

    def __init__(self, nodes, weights, counts, weighted=False, documents=None, rejected=()):
        self._nodes = tuple(sorted(nodes))
        self._node_set = frozenset(self._nodes)
        if set(weights) != set(counts):
            raise ValueError("weights 与 counts 的边集合不一致")
        for a, b in weights:
            if a not in self._node_set or b not in self._node_set:
                raise ValueError(f"边 ({a}, {b}) 的端点不在节点集合中")
        self._weights = MappingProxyType(dict(sorted(weights.items())))
        self._counts = MappingProxyType(dict(sorted(counts.items())))
        self._documents = MappingProxyType(dict(documents or {}))
        self._weighted = bool(weighted)
        self._rejected = tuple(rejected)

    @property
    def nodes(self):
        return self._nodes

    @property
    def weights(self):
        return self._weights

    @property
    def counts(self):
        return self._counts

    @property
    def documents(self):
        return self._documents

    @property
    def weighted(self):
        return self._weighted

    @property
    def rejected(self):
        return self._rejected

    def __len__(self):
        return len(self._nodes)

    def __contains__(self, node):
        return node in self._node_set

    def __repr__(self):
        kind = "weighted" if self._weighted else "unweighted"
        return f"<CollaborationGraph {kind}: {len(self._nodes)} nodes, {len(self._weights)} edges>"

    def edge_count(self):
        return len(self._weights)

    def weight(self, u, v):
        """无论参数顺序如何，返回 u-v 边的权重；不存在时抛出 KeyError"""
        return self._weights[(u, v) if u < v else (v, u)]

    def to_igraph(self):
        """每次调用都生成新的 igraph 图，调用方可以随意修改而不影响本对象"""
        node_to_idx = {node: idx for idx, node in enumerate(self._nodes)}
        edges = [(node_to_idx[a], node_to_idx[b]) for a, b in self._weights]
        g = ig.Graph(n=len(self._nodes), edges=edges, directed=False)
        g.vs["name"] = list(self._nodes)
        g.es["weight"] = [float(w) for w in self._weights.values()]
        g.es["count"] = list(self._counts.values())
        return g

    def to_networkx(self):
        nx_graph = nx.Graph()
        nx_graph.add_nodes_from(self._nodes)
        for (a, b), w in self._weights.items():
            nx_graph.add_edge(a, b, weight=float(w), count=self._counts[(a, b)])
        return nx_graph


# ------------------ 规范化 ------------------
def _check_identity(record, field, value):
    if value is None:
        raise InvalidRecordError(record, f"{field} 缺失")
    if not isinstance(value, str):
        raise InvalidRecordError(record, f"{field} 不是字符串: {value!r}")
    if not value.strip():
        raise InvalidRecordError(record, f"{field} 为空")


def canonicalize(record):
    """
    把一条记录转换为规范边 (min, max)。
    顺序使用 Python 字符串比较（Unicode 码点序，与 UTF-8 字节序一致），
    所以 sponsor / cosponsor 互换后得到同一条边。
    """
    _, principal, participant = record
    _check_identity(record, "principal", principal)
    _check_identity(record, "participant", participant)
    if principal == participant:
        raise InvalidRecordError(record, "principal 与 participant 相同（自环）")
    return (principal, participant) if principal < participant else (participant, principal)


# ------------------ 过滤与权重 ------------------
def reciprocal(n):
    """合作越多，距离越短"""
    return 1.0 / n


def max_participants(limit):
    """只保留参与者（去重后）不超过 limit 的文档"""
    def keep(group):
        return len({r.participant for r in group}) <= limit
    keep.__name__ = f"max_participants_{limit}"
    return keep


def group_by_document(records):
    groups = {}
    for record in records:
        record = Record(*record)
        groups.setdefault(record.document_id, []).append(record)
    return {doc: tuple(group) for doc, group in groups.items()}


# ------------------ 构建网络 ------------------
def build(records, filter=None, weight_fn=None, on_invalid="raise", progress=False):
    """
    从记录构建去重的无向合作网络。

    1. 按 document_id 分组，filter 不通过的整个文档在规范化之前被丢弃
    2. 每条保留的记录规范化为 (a, b)
    3. 对每条规范边累加出现次数 n
    4. weight_fn(n) 得到边权；weight_fn 为 None 时是无权图（边权记为 n，指标按跳数算）
    5. 节点集合 = 所有保留边的端点

    on_invalid="raise" 时遇到无效记录直接抛出 InvalidRecordError；
    on_invalid="skip" 时跳过，并记录在 graph.rejected 中。
    """
    if on_invalid not in ("raise", "skip"):
        raise ValueError(f"on_invalid 只能是 'raise' 或 'skip'，收到 {on_invalid!r}")

    groups = group_by_document(records)

    edge_counts = Counter()
    node_documents = Counter()
    rejected = []
    for doc, group in tqdm(groups.items(), total=len(groups), desc="处理文档", disable=not progress):
        if filter is not None and not filter(group):
            continue
        doc_nodes = set()
        for record in group:
            try:
                edge = canonicalize(record)
            except InvalidRecordError:
                if on_invalid == "raise":
                    raise
                rejected.append(record)
                continue
            edge_counts[edge] += 1
            doc_nodes.update(edge)
        for node in doc_nodes:
            node_documents[node] += 1

    weights = {}
    for edge, n in edge_counts.items():
        w = n if weight_fn is None else weight_fn(n)
        if isinstance(w, bool) or not isinstance(w, numbers.Real) or not math.isfinite(float(w)) or w <= 0:
            raise ValueError(f"边 {edge} 的权重必须是正的有限数，weight_fn({n}) 返回 {w!r}")
        weights[edge] = w

    nodes = set()
    for a, b in edge_counts:
        nodes.add(a)
        nodes.add(b)

    return CollaborationGraph(nodes, weights, edge_counts,
                              weighted=weight_fn is not None,
                              documents=node_documents,
                              rejected=rejected)


# ------------------ 读取数据 ------------------
def read_records(path, document_col=DOCUMENT_COL, principal_col=PRINCIPAL_COL,
                 participant_col=PARTICIPANT_COL):
    """读取 csv / tsv / parquet，缺失值变为 None，留给 canonicalize 判断"""
    path = os.fspath(path)
    if path.endswith(".parquet"):
        df = pd.read_parquet(path)
    elif path.endswith(".tsv"):
        df = pd.read_csv(path, sep="\t", dtype=str)
    elif path.endswith(".csv"):
        df = pd.read_csv(path, dtype=str)
    else:
        raise ValueError("只支持 csv、tsv 或 parquet 文件")

    columns = [document_col, principal_col, participant_col]
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise ValueError(f"文件缺少列: {', '.join(missing)}")

    df = df[columns].astype(object)
    df = df.where(df.notna(), None)

    records = []
    for doc, principal, participant in df.itertuples(index=False, name=None):
        records.append(Record(
            doc,
            None if principal is None else str(principal),
            None if participant is None else str(participant),
        ))
    return records


# ------------------ 边表 / 节点表 ------------------
def edges_frame(graph):
    rows = [
        {"source": a, "target": b, "count": graph.counts[(a, b)], "weight": w}
        for (a, b), w in graph.weights.items()
    ]
    return pd.DataFrame(rows, columns=["source", "target", "count", "weight"])


def nodes_frame(graph):
    degrees = Counter()
    for a, b in graph.weights:
        degrees[a] += 1
        degrees[b] += 1
    rows = [
        {"node": node, "degree": degrees[node], "documents": graph.documents.get(node, 0)}
        for node in graph.nodes
    ]
    df = pd.DataFrame(rows, columns=["node", "degree", "documents"])
    return df.sort_values(["degree", "node"], ascending=[False, True]).reset_index(drop=True)


# ------------------ 保存图 ------------------
def save_graph(graph, results_dir=RESULTS_DIR):
    results_dir = os.fspath(results_dir)
    os.makedirs(results_dir, exist_ok=True)
    paths = {
        "edges": os.path.join(results_dir, EDGES_FILE),
        "nodes": os.path.join(results_dir, NODES_FILE),
        "graphml": os.path.join(results_dir, GRAPHML_FILE),
        "gexf": os.path.join(results_dir, GEXF_FILE),
    }
    edges_frame(graph).to_parquet(paths["edges"], index=False)
    nodes_frame(graph).to_parquet(paths["nodes"], index=False)
    graph.to_igraph().write_graphml(paths["graphml"])
    nx.write_gexf(graph.to_networkx(), paths["gexf"])
    return paths


# ------------------ 命令行 ------------------
WEIGHTINGS = {
    "none": None,
    "reciprocal": reciprocal,
}


def add_build_arguments(parser):
    parser.add_argument("input", nargs="?", default=INPUT_FILE,
                        help="记录文件 (.csv / .tsv / .parquet)")
    parser.add_argument("--document-col", default=DOCUMENT_COL, help="文档 ID 列名")
    parser.add_argument("--principal-col", default=PRINCIPAL_COL, help="发起人列名")
    parser.add_argument("--participant-col", default=PARTICIPANT_COL, help="参与者列名")
    parser.add_argument("--max-participants", type=int, default=None,
                        help="只保留参与者数不超过该值的文档")
    parser.add_argument("--weighting", choices=sorted(WEIGHTINGS), default="none",
                        help="边权方案：none 为无权图，reciprocal 为 1/n")
    parser.add_argument("--skip-invalid", action="store_true",
                        help="跳过无效记录而不是报错退出")
    parser.add_argument("--results-dir", default=RESULTS_DIR, help="输出目录")
    return parser


def build_from_args(args, records=None):
    if records is None:
        print(Fore.BLUE + f"读取数据: {args.input}")
        records = read_records(args.input, args.document_col, args.principal_col, args.participant_col)
        print(Fore.GREEN + f"数据读取完成，共 {len(records)} 条记录")

    doc_filter = None
    if args.max_participants is not None:
        doc_filter = max_participants(args.max_participants)
        print(Fore.BLUE + f"只保留参与者不超过 {args.max_participants} 人的文档")

    print(Fore.BLUE + "构建合作网络 ...")
    graph = build(records, filter=doc_filter, weight_fn=WEIGHTINGS[args.weighting],
                  on_invalid="skip" if args.skip_invalid else "raise", progress=True)
    if graph.rejected:
        print(Fore.YELLOW + f"跳过 {len(graph.rejected)} 条无效记录")
    print(Fore.GREEN + f"网络构建完成: 节点数 {len(graph.nodes)}, 边数 {graph.edge_count()}")
    return graph


def main(argv=None):
    parser = add_build_arguments(argparse.ArgumentParser(description="构建合作网络"))
    args = parser.parse_args(argv)
    try:
        graph = build_from_args(args)
    except (NetworkError, FileNotFoundError, ValueError) as exc:
        print(Fore.RED + f"构建失败: {exc}")
        sys.exit(1)

    paths = save_graph(graph, args.results_dir)
    for kind, path in paths.items():
        print(Fore.GREEN + f"{kind} 保存完成: {path}")
    print(Fore.GREEN + "图构建完成 ✅")


if __name__ == "__main__":
    main()

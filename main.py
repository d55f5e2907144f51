#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
检查合作网络数据的合理性
分析文档参与者规模分布、边权分布和参与者活跃度
"""

import sys
import argparse
from collections import Counter

import numpy as np
import pandas as pd
from colorama import init, Fore

from build_network import add_build_arguments, build_from_args, group_by_document, read_records
from calculate_network_parameters import count_components
from network_errors import NetworkError

init(autoreset=True)

SIZE_BINS = [0, 2, 5, 10, 25, 50, float('inf')]
SIZE_LABELS = ['1-2人', '3-5人', '6-10人', '11-25人', '26-50人', '50+人']
QUANTILES = [25, 50, 75, 90, 95, 99]


def _participant_counts(records):
    groups = group_by_document(records)
    return np.array([len({r.participant for r in group}) for group in groups.values()], dtype=int)


def analyze_document_distribution(records):
    """分析每个文档的参与者数量分布"""
    print("=" * 60)
    print("文档参与者分布分析")
    print("=" * 60)

    sizes = _participant_counts(records)
    if sizes.size == 0:
        print(Fore.YELLOW + "没有任何文档")
        return {"documents": 0}

    stats = {
        "documents": int(sizes.size),
        "mean": float(sizes.mean()),
        "median": float(np.median(sizes)),
        "min": int(sizes.min()),
        "max": int(sizes.max()),
        "quantiles": {q: float(np.percentile(sizes, q)) for q in QUANTILES},
    }

    print(f"\n文档总数: {stats['documents']}")
    print(f"\n参与者数量统计:")
    print(f"  平均值: {stats['mean']:.1f}")
    print(f"  中位数: {stats['median']:.1f}")
    print(f"  最小值: {stats['min']}")
    print(f"  最大值: {stats['max']}")

    print(f"\n分位数分布:")
    for q, val in stats["quantiles"].items():
        print(f"  {q}%: {val:.0f}")

    size_df = pd.DataFrame({'size': sizes})
    size_df['group'] = pd.cut(size_df['size'], bins=SIZE_BINS, labels=SIZE_LABELS)
    buckets = size_df.groupby('group', observed=False)['size'].count()
    stats["buckets"] = {str(label): int(count) for label, count in buckets.items()}

    print(f"\n文档规模分组:")
    for label, count in stats["buckets"].items():
        print(f"  {label:10s}: {count:6d} 个文档")

    return stats


def analyze_actual_network(graph, top=10):
    """分析实际生成的网络"""
    print("\n" + "=" * 60)
    print("实际网络分析")
    print("=" * 60)

    counts = pd.Series(list(graph.counts.values()), dtype=float)
    pairs = pd.DataFrame(
        [(a, b, n) for (a, b), n in graph.counts.items()],
        columns=['source', 'target', 'count'],
    )

    stats = {
        "edges": graph.edge_count(),
        "nodes": len(graph.nodes),
        "components": count_components(graph),
        "mean_count": float(counts.mean()) if len(counts) else 0.0,
        "max_count": int(counts.max()) if len(counts) else 0,
        "top_pairs": pairs.sort_values(['count', 'source', 'target'],
                                       ascending=[False, True, True]).head(top).reset_index(drop=True),
    }

    print(f"\n实际边数: {stats['edges']:,}")
    print(f"实际节点数: {stats['nodes']:,}")
    print(f"连通分量数: {stats['components']}")
    if stats["components"] > 1:
        print(Fore.YELLOW + "网络不连通，平均距离等指标只在连通部分有意义")

    print(f"\n共同出现次数分布:")
    print(f"  平均次数: {stats['mean_count']:.2f}")
    print(f"  最大次数: {stats['max_count']}")

    print(f"\nTop {top} 合作最多的节点对:")
    print(stats["top_pairs"].to_string(index=False))

    return stats


def check_participant_activity(records, top=10):
    """统计每个参与者出现在多少个文档中"""
    print("\n" + "=" * 60)
    print("参与者活跃度检查")
    print("=" * 60)

    participant_docs = Counter()
    for group in group_by_document(records).values():
        for user in {r.participant for r in group if r.participant}:
            participant_docs[user] += 1

    print(f"\n唯一参与者数: {len(participant_docs):,}")
    if participant_docs:
        print(f"平均每人参与文档数: {np.mean(list(participant_docs.values())):.2f}")

    print(f"\nTop {top} 活跃参与者 (参与文档数):")
    most_common = sorted(participant_docs.items(), key=lambda item: (-item[1], item[0]))[:top]
    for user, count in most_common:
        print(f"  {user}: {count} 个文档")

    return {"participants": len(participant_docs), "most_active": most_common}


def main(argv=None):
    parser = add_build_arguments(argparse.ArgumentParser(description="合作网络合理性检查"))
    args = parser.parse_args(argv)

    print("\n" + "=" * 60)
    print("合作网络合理性检查")
    print("=" * 60)

    try:
        records = read_records(args.input, args.document_col, args.principal_col, args.participant_col)
        graph = build_from_args(args, records)
    except (NetworkError, FileNotFoundError, ValueError) as exc:
        print(Fore.RED + f"读取或构建失败: {exc}")
        sys.exit(1)

    analyze_document_distribution(records)
    analyze_actual_network(graph)
    check_participant_activity(records)

    print("\n" + "=" * 60)
    print("分析完成！")
    print("=" * 60)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
合作网络构建与指标计算的异常类型
"""


class NetworkError(Exception):
    """所有网络相关异常的基类"""


class InvalidRecordError(NetworkError, ValueError):
    """记录缺少身份字段，或发起人与参与者相同（自环）"""

    def __init__(self, record, reason):
        self.record = record
        self.reason = reason
        super().__init__(f"无效记录 {record!r}: {reason}")


class NoPathError(NetworkError):
    """两个节点位于不同连通分量，不存在路径"""

    def __init__(self, source, target):
        self.source = source
        self.target = target
        super().__init__(f"{source} 与 {target} 之间不存在路径")


class ConvergenceError(NetworkError):
    """特征向量中心性的幂迭代在限定次数内没有收敛"""


class EmptyGraphError(NetworkError):
    """在空图上调用了需要至少一个节点的指标"""


class NodeNotFoundError(NetworkError, KeyError):
    """图中不存在该节点"""

    def __init__(self, node):
        self.node = node
        super().__init__(node)

    def __str__(self):
        return f"图中不存在节点: {self.node}"

#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- PhyLineage --
##  Library for the Reconstruction of Multi-Sample Tumor Lineage Trees
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##
##  See "LICENSE.txt" for terms and conditions of usage.
##
##  If you use this work or any portion thereof in published work,
##  please cite it as:
##
##     Mark Kessler, Luay Nakhleh. 2025.
##
##############################################################################

""" 
Author : Mark Kessler
Last Edit : 10/15/26
First Included in Version : 1.0.0
Docs   - [x]
Tests  - [x]
Design - [ ]
"""

from __future__ import annotations
from collections import deque
import math
import networkx as nx

from .Network import ConstraintNetwork, PHYNode, ClusterNode, node_id

# Sentinel for an error score that has not been computed yet
NOT_COMPUTED : float = -1.0


def _format_aaf(value : float) -> str:
    """
    Format a frequency with at most 2 decimals and no trailing zeros.
    """
    formatted = f"{value:.2f}".rstrip("0").rstrip(".")
    if formatted in ("-0", ""):
        return "0"
    return formatted


class PHYTree:
    """
    A spanning tree of a constraint network, rooted at the germline. 
    
    Holds node ids in the order they were added (the root first) and an 
    adjacency map from node id to child ids. Every member except the root has
    exactly one parent in the tree.
    """
    
    def __init__(self, network : ConstraintNetwork) -> None:
        """
        Initialize an empty tree over the nodes of 'network'.

        Args:
            network (ConstraintNetwork): the network the tree spans.
        """
        self.network : ConstraintNetwork = network
        self.tree_nodes : list[int] = []
        self.tree_edges : dict[int, list[int]] = {}
        self._members : set[int] = set()
        self._parent : dict[int, int] = {}
        self._error_score : float = NOT_COMPUTED
    
    ### Construction ###
    
    def add_node(self, node : PHYNode | int) -> None:
        nid = node_id(node)
        if nid not in self._members:
            self._members.add(nid)
            self.tree_nodes.append(nid)
            self._error_score = NOT_COMPUTED
    
    def add_edge(self, src : PHYNode | int, dest : PHYNode | int) -> None:
        """
        Add the edge src -> dest to the tree. Has no effect if the edge is 
        already present.
        """
        src, dest = node_id(src), node_id(dest)
        children = self.tree_edges.setdefault(src, [])
        if dest not in children:
            children.append(dest)
            self._parent[dest] = src
            self._error_score = NOT_COMPUTED
    
    def remove_edge(self, src : PHYNode | int, dest : PHYNode | int) -> None:
        """
        Remove the edge src -> dest. dest is also removed from the tree, as 
        no other tree edge points to it.
        """
        src, dest = node_id(src), node_id(dest)
        children = self.tree_edges.get(src)
        if children is None or dest not in children:
            return
        
        children.remove(dest)
        if not children:
            del self.tree_edges[src]
        del self._parent[dest]
        
        if dest in self._members:
            self._members.remove(dest)
            # Nodes are removed in the reverse order they were added
            if self.tree_nodes[-1] == dest:
                self.tree_nodes.pop()
            else:
                self.tree_nodes.remove(dest)
        self._error_score = NOT_COMPUTED
    
    def clone(self) -> PHYTree:
        """
        Returns:
            PHYTree: a copy of this tree that shares no mutable state with it.
        """
        copy = PHYTree(self.network)
        copy.tree_nodes = list(self.tree_nodes)
        copy.tree_edges = {src : list(children) 
                           for src, children in self.tree_edges.items()}
        copy._members = set(self._members)
        copy._parent = dict(self._parent)
        copy._error_score = self._error_score
        return copy
    
    ### Queries ###
    
    def __len__(self) -> int:
        return len(self.tree_nodes)
    
    def contains_node(self, node : PHYNode | int) -> bool:
        return node_id(node) in self._members
    
    def contains_edge(self, src : PHYNode | int, dest : PHYNode | int) -> bool:
        return node_id(dest) in self.tree_edges.get(node_id(src), [])
    
    def root(self) -> PHYNode:
        return self.network.node(self.tree_nodes[0])
    
    def nodes(self) -> list[PHYNode]:
        """
        Returns:
            list[PHYNode]: member nodes, in the order they joined the tree.
        """
        return [self.network.node(nid) for nid in self.tree_nodes]
    
    def edges(self) -> list[tuple[int, int]]:
        """
        Returns:
            list[tuple[int, int]]: (parent id, child id) for every tree edge.
        """
        return [(src, dest) for src, children in self.tree_edges.items() 
                for dest in children]
    
    def edge_set(self) -> frozenset[tuple[int, int]]:
        return frozenset(self.edges())
    
    def get_children(self, node : PHYNode | int) -> list[PHYNode]:
        return [self.network.node(c) 
                for c in self.tree_edges.get(node_id(node), [])]
    
    def get_parent(self, node : PHYNode | int) -> PHYNode | None:
        """
        Returns:
            PHYNode | None: the parent of a node, None for the root.
        """
        parent = self._parent.get(node_id(node))
        if parent is None:
            return None
        return self.network.node(parent)
    
    def is_descendant(self, v : PHYNode | int, w : PHYNode | int) -> bool:
        """
        Check whether w is a (strict) descendant of v in this tree.

        Args:
            v (PHYNode | int): a node.
            w (PHYNode | int): a node.
        Returns:
            bool: True if w lies in the subtree below v.
        """
        v, w = node_id(v), node_id(w)
        q = deque(self.tree_edges.get(v, []))
        while q:
            n = q.popleft()
            if n == w:
                return True
            q.extend(self.tree_edges.get(n, []))
        return False
    
    ### Scoring ###
    
    def error_score(self) -> float:
        """
        The fit of the tree: the square root of the sum of squared amounts by 
        which the children's AAF sum exceeds their parent's AAF, over every 
        parent and sample. Computed once and memoized until the tree changes.

        Returns:
            float: the error score, lower is better.
        """
        if self._error_score == NOT_COMPUTED:
            self._error_score = self.compute_error_score()
        return self._error_score
    
    def compute_error_score(self) -> float:
        num_samples = self.network.num_samples
        err = 0.0
        for src in sorted(self.tree_edges.keys()):
            parent = self.network.node(src)
            children = [self.network.node(c) for c in self.tree_edges[src]]
            for s in range(num_samples):
                aaf_sum = sum(child.aaf(s) for child in children)
                excess = aaf_sum - parent.aaf(s)
                if excess > 0:
                    err += excess ** 2
        return math.sqrt(err)
    
    ### Output ###
    
    def get_lineage(self, sample_id : int, sample_name : str = None) -> str:
        """
        Describe the sub-populations of a sample: every sub-population present
        in the sample, in depth first order from the germline, indented by 
        depth and annotated with its AAF and [standard deviation].

        Args:
            sample_id (int): a sample id.
            sample_name (str, optional): name to print. Defaults to 
                                         "sample <id>".
        Returns:
            str: the decomposition.
        """
        if sample_name is None:
            sample_name = f"sample {sample_id}"
        lineage = [f"{sample_name}:\n", "GERMLINE\n"]
        for child in self.tree_edges.get(self.tree_nodes[0], []):
            self._lineage_help(lineage, "", child, sample_id)
        return "".join(lineage)
    
    def _lineage_help(self, lineage : list[str], indent : str, nid : int,
                      sample_id : int) -> None:
        indent += "\t"
        node = self.network.node(nid)
        if isinstance(node, ClusterNode) and node.group.contains_sample(sample_id):
            lineage.append(f"{indent}{node.group.tag}: \
{_format_aaf(node.aaf(sample_id))} [{_format_aaf(node.std_dev(sample_id))}]\n")
        for child in self.tree_edges.get(nid, []):
            self._lineage_help(lineage, indent, child, sample_id)
    
    def to_networkx(self) -> nx.DiGraph:
        """
        Returns:
            nx.DiGraph: the tree, keyed by node id, with 'level' and 'label' 
                        node attributes.
        """
        tree = nx.DiGraph()
        for node in self.nodes():
            tree.add_node(node.id, level = node.level, label = node.label())
        tree.add_edges_from(self.edges())
        return tree
    
    def __str__(self) -> str:
        return "".join(f"{src}\t{dest}\n" for src, dest in self.edges())
    
    def __repr__(self) -> str:
        return f"PHYTree(nodes={len(self.tree_nodes)}, \
edges={len(self._parent)})"

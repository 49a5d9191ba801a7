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
Last Edit : 10/17/26
First Included in Version : 1.0.0

Docs   - [x]
Tests  - [x]
Design - [ ]
"""

from __future__ import annotations
import networkx as nx
import numpy as np

from .Network import ConstraintNetwork
from .LineageTree import PHYTree


def is_spanning_tree(tree : PHYTree, network : ConstraintNetwork = None) -> bool:
    """
    Check that a tree is a spanning tree of a network rooted at the germline:
    it holds every node of the network, every member but the root has exactly
    one parent, and every tree edge is a network edge.

    Args:
        tree (PHYTree): the tree to check.
        network (ConstraintNetwork, optional): the network the tree should 
                                               span. Defaults to the tree's 
                                               own network.
    Returns:
        bool: True if the tree is a spanning tree of the network.
    """
    if network is None:
        network = tree.network
    
    if len(tree.tree_nodes) != network.num_nodes:
        return False
    if set(tree.tree_nodes) != {node.id for node in network.nodes}:
        return False
    if tree.tree_nodes[0] != network.root().id:
        return False
    
    in_degree = {nid : 0 for nid in tree.tree_nodes}
    for src, dest in tree.edges():
        if not network.has_edge(src, dest):
            return False
        in_degree[dest] += 1
    
    for nid, degree in in_degree.items():
        expected = 0 if nid == network.root().id else 1
        if degree != expected:
            return False
    
    return nx.is_arborescence(tree.to_networkx())

def all_trees_distinct(trees : list[PHYTree]) -> bool:
    """
    Check that no two trees in a list have the same edge set.

    Args:
        trees (list[PHYTree]): a list of trees.
    Returns:
        bool: True if every tree is unique.
    """
    seen : set[frozenset[tuple[int, int]]] = set()
    for tree in trees:
        edges = tree.edge_set()
        if edges in seen:
            return False
        seen.add(edges)
    return True

def count_spanning_trees(network : ConstraintNetwork) -> int:
    """
    Count the spanning trees of a network rooted at its root, without 
    enumerating them, by the directed matrix-tree theorem: the count is the 
    determinant of the in-degree Laplacian with the root's row and column 
    removed.
    
    Float precision limits the result to networks with fewer than ~2^53 trees.

    Args:
        network (ConstraintNetwork): the network.
    Returns:
        int: the number of spanning trees.
    """
    size = network.num_nodes
    laplacian = np.zeros((size, size))
    for edge in network.get_edges():
        laplacian[edge.src, edge.dest] -= 1
        laplacian[edge.dest, edge.dest] += 1
    
    keep = [nid for nid in range(size) if nid != network.root().id]
    if not keep:
        return 1
    
    minor = laplacian[np.ix_(keep, keep)]
    return int(np.rint(np.linalg.det(minor)))

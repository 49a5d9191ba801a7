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
Last Edit : 10/16/26
First Included in Version : 1.0.0
Docs   - [x]
Tests  - [x]
Design - [ ]

Filters spanning trees by the AAF sum rule and ranks the survivors.

A sub-population's cells contain the mutations of all its ancestors, so in
every sample the AAFs of a node's children can add up to at most the node's
own AAF. A tree is admitted if this holds for every parent and sample, up to
the sum of the error margins of the parent's edges. Admitted trees are sorted
by error score, best (lowest) first. The order of trees with equal scores is 
undefined.

Sample leaves have AAF 0 and are not sub-populations, so they take no part in
the rule.
"""

from __future__ import annotations
import numpy as np

from .Network import ConstraintNetwork, PHYNode, aaf_error_margin
from .LineageTree import PHYTree
from .Parameters import LineageParameters, DEFAULT_PARAMETERS


class ConstraintRanker:
    """
    Applies the AAF constraints to spanning trees of one network and ranks 
    the trees that pass.
    """
    
    def __init__(self, network : ConstraintNetwork,
                 params : LineageParameters = DEFAULT_PARAMETERS) -> None:
        self.network : ConstraintNetwork = network
        self.params : LineageParameters = params
        self._samples : range = range(network.num_samples)
    
    def _aaf(self, node : PHYNode) -> np.ndarray:
        return np.array([node.aaf(s) for s in self._samples])
    
    def _margins(self, src : PHYNode, dest : PHYNode) -> np.ndarray:
        return np.array([aaf_error_margin(src, dest, s, self.params) 
                         for s in self._samples])
    
    def violations(self, tree : PHYTree) -> list[tuple[int, int, float]]:
        """
        Find every (parent, sample) pair that breaks the AAF sum rule.

        Args:
            tree (PHYTree): a spanning tree of this ranker's network.
        Returns:
            list[tuple[int, int, float]]: (parent id, sample id, amount by 
                                          which the children's AAF sum 
                                          exceeds the parent AAF plus margin).
        """
        found = []
        for src in tree.tree_edges:
            parent = self.network.node(src)
            children = [child for child in tree.get_children(parent) 
                        if not child.is_leaf()]
            if not children:
                continue
            
            aaf_sum = np.sum([self._aaf(child) for child in children], axis = 0)
            margin = np.sum([self._margins(parent, child) 
                             for child in children], axis = 0)
            excess = aaf_sum - (self._aaf(parent) + margin)
            for sample in np.flatnonzero(excess > 0):
                found.append((src, int(sample), float(excess[sample])))
        return found
    
    def check_constraints(self, tree : PHYTree) -> bool:
        """
        Returns:
            bool: True if the tree satisfies the AAF sum rule everywhere.
        """
        return len(self.violations(tree)) == 0
    
    def filter(self, trees : list[PHYTree]) -> list[PHYTree]:
        """
        Returns:
            list[PHYTree]: the trees that pass the AAF constraints, in their 
                           original order.
        """
        return [tree for tree in trees if self.check_constraints(tree)]
    
    def rank(self, trees : list[PHYTree]) -> list[PHYTree]:
        """
        Filter the trees and sort the survivors by error score, lowest first.

        Args:
            trees (list[PHYTree]): candidate spanning trees.
        Returns:
            list[PHYTree]: admitted trees, best first.
        """
        return sorted(self.filter(trees), key = lambda t : t.error_score())

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
Design - [x]

Builds the constraint network from SNV groups.

Every cluster of every group becomes a node on the level equal to the number
of samples the group occurs in. The germline root sits above all of them and
one leaf per sample sits at level 0. Edges are added between the nodes of 
adjacent non-empty levels (and between clusters of the same group) whenever 
one node's AAF dominates the other's in every sample, up to an error margin.
Finally every node that is left without a parent is attached to the closest
node above it that dominates it, or to the root.
"""

from __future__ import annotations
import logging
import numpy as np

from .Network import ConstraintNetwork, PHYNode, aaf_error_margin
from .Parameters import LineageParameters, DEFAULT_PARAMETERS
from .SNVGroup import SNVGroup, LineageDataError

logger = logging.getLogger(__name__)

# Orientation codes returned by the dominance test
FORWARD : int = 0
REVERSE : int = 1
NO_EDGE : int = -1


class NetworkBuilder:
    """
    Constructs a ConstraintNetwork from a list of SNV groups.
    """
    
    def __init__(self, groups : list[SNVGroup], num_samples : int,
                 params : LineageParameters = DEFAULT_PARAMETERS) -> None:
        """
        Args:
            groups (list[SNVGroup]): the SNV groups. May be empty, in which 
                                     case the network only holds the root and
                                     the sample leaves.
            num_samples (int): total number of tissue samples.
            params (LineageParameters, optional): settings. Defaults to 
                                                  DEFAULT_PARAMETERS.
        """
        self.groups : list[SNVGroup] = list(groups)
        self.num_samples : int = num_samples
        self.params : LineageParameters = params
        self.network : ConstraintNetwork = None
        
        # AAF vector per node id, filled as nodes are created
        self._aaf : dict[int, np.ndarray] = {}
    
    def build(self) -> ConstraintNetwork:
        """
        Create the nodes, add the dominance edges and repair connectivity.

        Returns:
            ConstraintNetwork: the new network.
        """
        net = ConstraintNetwork(self.num_samples, self.params)
        self.network = net
        net.groups = list(self.groups)
        
        self._index(net.add_root())
        
        # Sub-population nodes, with edges between the clusters of each group
        for group in self.groups:
            group_nodes = [self._index(net.add_cluster_node(group, i)) 
                           for i in range(len(group.clusters))]
            for i in range(len(group_nodes)):
                for j in range(i + 1, len(group_nodes)):
                    self.check_and_add_edge(group_nodes[i], group_nodes[j])
        
        for sample in range(self.num_samples):
            self._index(net.add_sample_node(sample))
        
        self._add_level_edges()
        if self.params.all_edges:
            self._add_hidden_edges()
        self._connect_orphans()
        
        logger.debug("Built constraint network with %d nodes and %d edges",
                     net.num_nodes, net.num_edges)
        return net
    
    def _index(self, node : PHYNode) -> PHYNode:
        self._aaf[node.id] = np.array([node.aaf(s) 
                                       for s in range(self.num_samples)])
        return node
    
    ### Edge construction ###
    
    def _add_level_edges(self) -> None:
        """
        Test every pair of nodes on adjacent non-empty levels, from the root
        level down to the sample leaves.
        """
        levels = self.network.non_empty_levels()
        for upper, lower in zip(levels, levels[1:]):
            for n1 in self.network.levels[upper]:
                for n2 in self.network.levels[lower]:
                    self.check_and_add_edge(n1, n2)
    
    def _add_hidden_edges(self) -> None:
        """
        Test every pair of sub-population levels, not only adjacent ones.
        Sample leaves are still only connected from their closest level.
        """
        levels = [lvl for lvl in self.network.non_empty_levels() if lvl > 0]
        for i, upper in enumerate(levels):
            for lower in levels[i + 1:]:
                for n1 in self.network.levels[upper]:
                    for n2 in self.network.levels[lower]:
                        self.check_and_add_edge(n1, n2)
    
    def _connect_orphans(self) -> None:
        """
        Attach every non-root node without a parent to the first node, 
        scanning the levels above it closest first, that dominates it. If 
        there is no such node, attach it to the root.
        """
        net = self.network
        for orphan in net.orphans():
            parent = None
            for level in range(orphan.level + 1, self.num_samples + 2):
                for candidate in net.levels.get(level, []):
                    if self.orientation(candidate, orphan) == FORWARD:
                        parent = candidate
                        break
                if parent is not None:
                    break
            
            if parent is None:
                parent = net.root()
            net.add_edge(parent, orphan)
            logger.debug("Connected orphan node %d to node %d", orphan.id,
                         parent.id)
    
    ### Dominance test ###
    
    def margins(self, src : PHYNode, dest : PHYNode) -> np.ndarray:
        """
        Returns:
            np.ndarray: the AAF error margin of the edge src -> dest in every
                        sample.
        """
        return np.array([aaf_error_margin(src, dest, s, self.params) 
                         for s in range(self.num_samples)])
    
    def _covers(self, n1 : PHYNode, n2 : PHYNode) -> tuple[bool, float]:
        """
        Check whether n1 may precede n2: n1's AAF is at least n2's AAF minus 
        the margin, in every sample. A sample where n1 is absent but n2 is 
        present rules the direction out.

        Returns:
            tuple[bool, float]: whether n1 covers n2, and the total amount 
                                by which n2 exceeds n1.
        """
        aaf_1 = self._aaf[n1.id]
        aaf_2 = self._aaf[n2.id]
        if np.any((aaf_1 == 0) & (aaf_2 != 0)):
            return False, np.inf
        
        covers = bool(np.all(aaf_1 >= aaf_2 - self.margins(n1, n2)))
        error = float(np.sum(np.maximum(aaf_2 - aaf_1, 0)))
        return covers, error
    
    def orientation(self, n1 : PHYNode, n2 : PHYNode) -> int:
        """
        Decide which way, if any, an edge between two nodes should point. 
        Nothing is added to the network.
        
        A sample leaf n2 gets an edge from n1 iff n1 is present in that 
        sample. Otherwise, if exactly one node covers the other the edge 
        points that way. If both do, the orientation with the smaller total
        deviation wins (n1 -> n2 on a tie). No edge ever points into the root.

        Args:
            n1 (PHYNode): a node, on an equal or higher level than n2.
            n2 (PHYNode): a node.
        Returns:
            int: FORWARD (n1 -> n2), REVERSE (n2 -> n1) or NO_EDGE.
        """
        if n2.is_leaf():
            if n1.aaf(n2.sample_id) > 0:
                return FORWARD
            return NO_EDGE
        
        covers_12, err_12 = self._covers(n1, n2)
        covers_21, err_21 = self._covers(n2, n1)
        
        if covers_12 and covers_21:
            direction = FORWARD if err_12 <= err_21 else REVERSE
        elif covers_12:
            direction = FORWARD
        elif covers_21:
            direction = REVERSE
        else:
            direction = NO_EDGE

        # The germline never has a parent
        if direction == REVERSE and n1.is_root():
            return NO_EDGE
        return direction
    
    def check_and_add_edge(self, n1 : PHYNode, n2 : PHYNode) -> int:
        """
        Run the dominance test on two nodes and add the resulting edge.

        Args:
            n1 (PHYNode): a node, on an equal or higher level than n2.
            n2 (PHYNode): a node.
        Returns:
            int: FORWARD, REVERSE or NO_EDGE, as in orientation().
        """
        direction = self.orientation(n1, n2)
        if direction == FORWARD:
            self.network.add_edge(n1, n2)
        elif direction == REVERSE:
            self.network.add_edge(n2, n1)
        return direction


def build_network(groups : list[SNVGroup], num_samples : int,
                  params : LineageParameters = DEFAULT_PARAMETERS) \
                  -> ConstraintNetwork:
    """
    Build the constraint network for a list of SNV groups.

    Args:
        groups (list[SNVGroup]): the SNV groups (at least one).
        num_samples (int): total number of tissue samples (at least one).
        params (LineageParameters, optional): settings. Defaults to 
                                              DEFAULT_PARAMETERS.
    Raises:
        LineageDataError: if there are no groups or no samples, or a group 
                          does not describe num_samples samples.
    Returns:
        ConstraintNetwork: the network.
    """
    if num_samples < 1:
        raise LineageDataError(f"At least one sample is required, got \
{num_samples}")
    if len(groups) == 0:
        raise LineageDataError("No SNV groups were given. At least one group \
is needed to build a constraint network.")
    for group in groups:
        if group.num_samples_total != num_samples:
            raise LineageDataError(f"Group '{group.tag}' describes \
{group.num_samples_total} samples, expected {num_samples}")
    
    params.validate()
    return NetworkBuilder(groups, num_samples, params).build()

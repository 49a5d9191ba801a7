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
Design - [x]

The lineage reconstruction pipeline:

    SNV groups -> constraint network -> all spanning trees -> AAF constraint 
    filter -> trees ranked by error score

If no tree passes the constraints, the network is repaired by dropping the 
least supported group that is not robust and rebuilding it, until trees are 
found or there is nothing left to drop.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from .Network import ConstraintNetwork
from .NetworkBuilder import NetworkBuilder, build_network
from .LineageTree import PHYTree
from .Ranking import ConstraintRanker
from .SNVGroup import SNVGroup
from .SpanningTrees import SpanningTreeEnumerator, SearchReport
from .Parameters import LineageParameters, DEFAULT_PARAMETERS

logger = logging.getLogger(__name__)


@dataclass
class LineageResult:
    """
    Outcome of a full pipeline run.
    
    network : the final constraint network (after any repairs).
    trees : admitted lineage trees, best first. Empty if no consistent 
            lineage was found.
    removed_groups : groups dropped by network repair, in removal order.
    num_candidates : spanning trees enumerated on the final network, before
                     the AAF constraint filter.
    truncated : True if the final tree search stopped on a budget.
    """
    network : ConstraintNetwork
    trees : list[PHYTree] = field(default_factory = list)
    removed_groups : list[SNVGroup] = field(default_factory = list)
    num_candidates : int = 0
    truncated : bool = False
    
    @property
    def best(self) -> PHYTree | None:
        """
        Returns:
            PHYTree | None: the lowest error tree, or None if there are none.
        """
        if self.trees:
            return self.trees[0]
        return None


def _search(network : ConstraintNetwork) \
        -> tuple[list[PHYTree], SearchReport]:
    """
    Enumerate, filter and rank the spanning trees of a network.
    """
    report = SpanningTreeEnumerator(network, network.params).enumerate()
    trees = ConstraintRanker(network, network.params).rank(report.trees)
    return trees, report

def get_lineage_trees(network : ConstraintNetwork) -> list[PHYTree]:
    """
    Find every spanning tree of the network that satisfies the AAF 
    constraints, ranked by error score (lowest first).

    Args:
        network (ConstraintNetwork): a constraint network.
    Returns:
        list[PHYTree]: the admitted trees, best first.
    """
    trees, _ = _search(network)
    logger.info("Found %d valid tree(s)", len(trees))
    return trees

def _remove_weakest_group(network : ConstraintNetwork) \
        -> tuple[ConstraintNetwork, SNVGroup | None]:
    """
    Rebuild a network without its non-robust group with the fewest SNVs.

    Returns:
        tuple[ConstraintNetwork, SNVGroup | None]: the rebuilt network, and 
                                                   the group that was 
                                                   dropped (None if every 
                                                   group is robust).
    """
    to_remove : SNVGroup = None
    for group in network.groups:
        if group.is_robust:
            continue
        if to_remove is None or group.num_snvs < to_remove.num_snvs:
            to_remove = group
    
    groups = [group for group in network.groups if group is not to_remove]
    if to_remove is not None:
        logger.info("Removed group %s of size %d", to_remove.tag, 
                    to_remove.num_snvs)
    else:
        logger.info("No group left to remove: all remaining groups are robust")
    
    rebuilt = NetworkBuilder(groups, network.num_samples, network.params).build()
    return rebuilt, to_remove

def fix_network(network : ConstraintNetwork) -> ConstraintNetwork:
    """
    Adjust a network that has no valid lineage tree: drop the least 
    supported group that is not robust and build a new network from the 
    remaining groups. The old network is left untouched.

    Args:
        network (ConstraintNetwork): a network with no valid trees.
    Returns:
        ConstraintNetwork: the rebuilt network. It has the same groups as 
                           'network' if every group is robust.
    """
    rebuilt, _ = _remove_weakest_group(network)
    return rebuilt

def build_lineage(groups : list[SNVGroup], num_samples : int,
                  params : LineageParameters = DEFAULT_PARAMETERS) \
                  -> LineageResult:
    """
    Run the whole pipeline: build the constraint network, find and rank its
    valid lineage trees, and repair the network while none are found.

    Args:
        groups (list[SNVGroup]): the SNV groups, with their clusters.
        num_samples (int): total number of tissue samples.
        params (LineageParameters, optional): settings. Defaults to 
                                              DEFAULT_PARAMETERS.
    Raises:
        LineageDataError: if the input is malformed.
    Returns:
        LineageResult: the ranked trees and repair bookkeeping.
    """
    network = build_network(groups, num_samples, params)
    logger.debug("%s", network)
    
    trees, report = _search(network)
    logger.info("Found %d valid tree(s)", len(trees))
    
    removed : list[SNVGroup] = []
    if not trees:
        logger.info("Adjusting the network...")
        while not trees:
            num_nodes = network.num_nodes
            network, group = _remove_weakest_group(network)
            if group is None or network.num_nodes == num_nodes:
                break
            removed.append(group)
            trees, report = _search(network)
        logger.info("Found %d valid tree(s) after network adjustments", 
                    len(trees))
    
    if trees:
        logger.debug("Top tree\nError score: %s\n%s", trees[0].error_score(),
                     trees[0])
    else:
        logger.info("No consistent lineage found")
    
    return LineageResult(network = network, trees = trees, 
                         removed_groups = removed,
                         num_candidates = len(report.trees), 
                         truncated = report.truncated)

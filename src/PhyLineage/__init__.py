#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- PhyLineage --
##  Library for the Reconstruction of Multi-Sample Tumor Lineage Trees
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##############################################################################

"""
PhyLineage - Multi-Sample Tumor Lineage Reconstruction

Builds a constraint network over the sub-populations found in several tumor 
samples, enumerates all of its spanning trees and ranks those consistent with
the observed allele frequencies.
"""

# Configuration and input data
from .Parameters import LineageParameters, ParameterError, DEFAULT_PARAMETERS
from .SNVGroup import Cluster, SNVGroup, LineageDataError

# Core data structures
from .Network import (
    ConstraintNetwork,
    PHYNode,
    RootNode,
    SampleNode,
    ClusterNode,
    Edge,
    NetworkError,
    NodeError,
    EdgeError
)
from .LineageTree import PHYTree

# Network construction, search and ranking
from .NetworkBuilder import NetworkBuilder, build_network
from .SpanningTrees import (
    SpanningTreeEnumerator,
    SearchReport,
    SearchTruncatedWarning,
    enumerate_spanning_trees
)
from .Ranking import ConstraintRanker
from .LineageEngine import (
    LineageResult,
    get_lineage_trees,
    fix_network,
    build_lineage
)
from .GraphUtils import is_spanning_tree, all_trees_distinct, count_spanning_trees

__version__ = "1.0.0"

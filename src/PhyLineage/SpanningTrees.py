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
Design - [x]

Enumeration of every directed spanning tree of a constraint network rooted at
the germline, after H. N. Gabow and E. W. Myers, "Finding all spanning trees 
of directed and undirected graphs", SIAM J. Comput. 7(3), 1978.

The search grows a partial tree T one edge at a time from a stack F of 
frontier edges (edges from a node in T to a node outside T). Once every 
extension of T by an edge e has been explored, e is deleted from the residual
graph G and the next frontier edge is tried, unless e has become a bridge: if
every remaining edge into e's head comes from a descendant of that head in 
the last tree found (L), no further spanning tree avoids e and the loop stops.

Every change made to F and G is written to an undo log and reverted in the
reverse order, so that each call hands F and G back to its caller exactly as 
it received them.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import sys
import warnings

from .Network import ConstraintNetwork, Edge
from .LineageTree import PHYTree
from .Parameters import LineageParameters, DEFAULT_PARAMETERS

logger = logging.getLogger(__name__)


#############################
#### EXCEPTION SPECIFICS ####
#############################

class SearchTruncatedWarning(UserWarning):
    """
    Issued when the spanning tree search stops early because it ran out of 
    its tree or call budget. The trees found up to that point are kept.
    """
    pass

class _BudgetExhausted(Exception):
    """
    Unwinds the recursive search once a budget runs out.
    """
    def __init__(self, reason : str) -> None:
        self.reason = reason
        super().__init__(reason)


##################
#### RESULTS #####
##################

@dataclass
class SearchReport:
    """
    Outcome of a spanning tree search.
    
    trees : every spanning tree found, in discovery order.
    truncated : True if a budget stopped the search early.
    reason : why the search was truncated, if it was.
    grow_calls : number of recursive grow steps taken.
    """
    trees : list[PHYTree] = field(default_factory = list)
    truncated : bool = False
    reason : str | None = None
    grow_calls : int = 0


####################
#### ENUMERATOR ####
####################

class SpanningTreeEnumerator:
    """
    Finds all spanning trees of a ConstraintNetwork rooted at its root.
    
    The enumerator owns the mutable search state (the residual graph G, the 
    frontier stack F and the last complete tree L). An instance may be reused;
    each call to enumerate() starts from a fresh copy of the network's edges.
    """
    
    def __init__(self, network : ConstraintNetwork, 
                 params : LineageParameters = DEFAULT_PARAMETERS) -> None:
        """
        Args:
            network (ConstraintNetwork): the network to search.
            params (LineageParameters, optional): provides the tree and call
                                                  budgets. Defaults to 
                                                  DEFAULT_PARAMETERS.
        """
        self.network : ConstraintNetwork = network
        self.params : LineageParameters = params
        
        self._residual : dict[int, list[int]] = {}
        self._frontier : list[Edge] = []
        self._last : PHYTree | None = None
        self._in_nbrs : dict[int, list[int]] = {}
        self._report : SearchReport = None
    
    def enumerate(self) -> SearchReport:
        """
        Run the search.

        Returns:
            SearchReport: the trees found and whether the search was cut short.
        """
        net = self.network
        root = net.root()
        
        self._residual = net.adjacency()
        self._in_nbrs = {node.id : [] for node in net.nodes}
        for src, children in self._residual.items():
            for dest in children:
                self._in_nbrs[dest].append(src)
        
        self._last = None
        self._report = SearchReport()
        
        tree = PHYTree(net)
        tree.add_node(root)
        self._frontier = [Edge(root.id, child) 
                          for child in self._residual[root.id]]
        
        # Recursion goes one level deeper per tree node
        needed = net.num_nodes * 2 + 100
        if sys.getrecursionlimit() < needed:
            sys.setrecursionlimit(needed)
        
        try:
            self._grow(tree)
        except _BudgetExhausted as budget:
            self._report.truncated = True
            self._report.reason = budget.reason
            logger.warning("Spanning tree search truncated: %s", budget.reason)
            warnings.warn(f"Spanning tree search truncated after \
{len(self._report.trees)} tree(s): {budget.reason}", SearchTruncatedWarning)
        
        logger.debug("Spanning tree search found %d tree(s) in %d grow calls",
                     len(self._report.trees), self._report.grow_calls)
        return self._report
    
    def _grow(self, tree : PHYTree) -> None:
        """
        Extend 'tree' in every possible way, recording each complete spanning 
        tree found.

        Args:
            tree (PHYTree): the partial tree T. Restored before returning.
        Raises:
            _BudgetExhausted: if the tree or call budget runs out.
        """
        report = self._report
        report.grow_calls += 1
        if report.grow_calls > self.params.max_num_grow_calls:
            raise _BudgetExhausted(f"exceeded {self.params.max_num_grow_calls}\
 grow calls")
        
        if len(tree) == self.network.num_nodes:
            if len(report.trees) >= self.params.max_num_trees:
                raise _BudgetExhausted(f"more than \
{self.params.max_num_trees} trees")
            self._last = tree.clone()
            report.trees.append(self._last.clone())
            return
        
        frontier = self._frontier
        residual = self._residual
        
        # Edges explored at this level, with their position in G
        explored : list[tuple[Edge, int]] = []
        
        bridge = False
        while not bridge and frontier:
            e = frontier.pop()
            v = e.dest
            tree.add_node(v)
            tree.add_edge(e.src, v)
            
            # Edges out of v into nodes not yet in T become frontier edges
            pushed = 0
            for w in residual[v]:
                if not tree.contains_node(w):
                    frontier.append(Edge(v, w))
                    pushed += 1
            
            # v is claimed, so drop every other frontier edge into it
            removed : list[tuple[int, Edge]] = []
            kept : list[Edge] = []
            for index, f in enumerate(frontier):
                if f.dest == v and tree.contains_node(f.src):
                    removed.append((index, f))
                else:
                    kept.append(f)
            if removed:
                frontier[:] = kept
            
            self._grow(tree)
            
            # Undo the frontier updates, last change first
            if pushed:
                del frontier[len(frontier) - pushed:]
            for index, f in removed:
                frontier.insert(index, f)
            
            # e has been fully explored: take it out of T and G
            tree.remove_edge(e.src, v)
            position = residual[e.src].index(v)
            del residual[e.src][position]
            explored.append((e, position))
            
            bridge = self._is_bridge(v)
        
        # Hand F and G back to the caller as they were
        for e, position in reversed(explored):
            frontier.append(e)
            residual[e.src].insert(position, e.dest)
    
    def _is_bridge(self, v : int) -> bool:
        """
        Check whether v can still be reached in G without the edge that was 
        just deleted: that is the case iff some remaining edge (w, v) has a 
        tail w that is not a descendant of v in the last tree found.
        
        Until a first spanning tree is found, none exists at all, so there is
        nothing left to explore.

        Args:
            v (int): head of the deleted edge.
        Returns:
            bool: True if no spanning tree remains without the deleted edge.
        """
        if self._last is None:
            return True
        for w in self._in_nbrs[v]:
            if v in self._residual[w] and not self._last.is_descendant(v, w):
                return False
        return True


def enumerate_spanning_trees(network : ConstraintNetwork, 
                             params : LineageParameters = DEFAULT_PARAMETERS)\
                             -> SearchReport:
    """
    Find every spanning tree of 'network' rooted at its root, subject to the 
    budgets in 'params'.

    Args:
        network (ConstraintNetwork): the network to search.
        params (LineageParameters, optional): settings. Defaults to 
                                              DEFAULT_PARAMETERS.
    Returns:
        SearchReport: the trees and search statistics.
    """
    return SpanningTreeEnumerator(network, params).enumerate()

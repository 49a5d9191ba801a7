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
Last Edit : 10/14/26
First Included in Version : 1.0.0
Docs   - [x]
Tests  - [x]
Design - [x]

The constraint network. Each internal node is a sub-population (a cluster of
an SNV group), the root is the germline, and each leaf is a tissue sample. 
A directed edge (a, b) means that a may have happened before b in the 
evolution of the tumor.

Nodes are owned by the network that created them. A node's id is its index in
that network's node list, and ids are the only identity used anywhere: two 
nodes are the same node iff their ids are equal.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
import networkx as nx
import numpy as np

from .Parameters import LineageParameters, DEFAULT_PARAMETERS
from .SNVGroup import SNVGroup, Cluster


#############################
#### EXCEPTION SPECIFICS ####
#############################

class NetworkError(Exception):
    """
    This exception is raised when a network is malformed, 
    or if a network operation fails.
    """
    def __init__(self, message = "Error with a Network Instance"):
        self.message = message
        super().__init__(self.message)

class NodeError(Exception):
    """
    This exception is raised when a Node operation fails.
    """
    def __init__(self, message = "Error in Node Class"):
        super().__init__(message)
        
class EdgeError(Exception):
    """
    This exception is raised when an Edge operation fails.
    """
    def __init__(self, message = "Error in Edge Class"):
        super().__init__(message)


##########################
#### NODES AND EDGES #####
##########################

class PHYNode(ABC):
    """
    A node of the constraint network. Exposes the AAF and standard deviation 
    of the node in each sample. Immutable once created.
    """
    
    def __init__(self, node_id : int, level : int) -> None:
        """
        Args:
            node_id (int): id of the node in its network.
            level (int): network level. Sample leaves are at level 0, the root
                         at the number of samples + 1, and a sub-population at
                         the number of samples its group occurs in.
        """
        self._id : int = node_id
        self._level : int = level
    
    @property
    def id(self) -> int:
        return self._id
    
    @property
    def level(self) -> int:
        return self._level
    
    def is_root(self) -> bool:
        return False
    
    def is_leaf(self) -> bool:
        return False
    
    @abstractmethod
    def aaf(self, sample_id : int) -> float:
        """
        Args:
            sample_id (int): a sample id.
        Returns:
            float: the alternative allele frequency of this node in the sample.
        """
        pass
    
    def std_dev(self, sample_id : int) -> float:
        """
        Args:
            sample_id (int): a sample id.
        Returns:
            float: the AAF standard deviation of this node in the sample.
        """
        return 0.0
    
    def std_error(self, sample_id : int) -> float | None:
        """
        95% confidence half-width of this node's AAF in a sample.

        Args:
            sample_id (int): a sample id.
        Returns:
            float | None: the standard error term, or None if the node should
                          use the fixed error margin instead.
        """
        return 0.0
    
    @abstractmethod
    def label(self) -> str:
        """
        Returns:
            str: short display label.
        """
        pass
    
    def long_label(self) -> str:
        return self.label()
    
    def __eq__(self, other : object) -> bool:
        if not isinstance(other, PHYNode):
            return NotImplemented
        return self._id == other._id
    
    def __hash__(self) -> int:
        return self._id
    
    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._id})"


class RootNode(PHYNode):
    """
    The germline root. Its AAF is the configured maximum in every sample.
    """
    
    def __init__(self, node_id : int, num_samples : int, aaf_max : float) -> None:
        super().__init__(node_id, num_samples + 1)
        self.aaf_max : float = aaf_max
    
    def is_root(self) -> bool:
        return True
    
    def aaf(self, sample_id : int) -> float:
        return self.aaf_max
    
    def std_error(self, sample_id : int) -> float | None:
        return None
    
    def label(self) -> str:
        return "germline"
    
    def __str__(self) -> str:
        return f"Node {self._id}: germline"


class SampleNode(PHYNode):
    """
    A tissue sample. AAF and standard deviation are 0 everywhere; the node 
    stands for the sample itself rather than a cluster of mutations.
    """
    
    def __init__(self, node_id : int, sample_id : int) -> None:
        super().__init__(node_id, 0)
        self.sample_id : int = sample_id
    
    def is_leaf(self) -> bool:
        return True
    
    def aaf(self, sample_id : int) -> float:
        return 0.0
    
    def label(self) -> str:
        return f"sample {self.sample_id}"
    
    def __str__(self) -> str:
        return f"Node {self._id}: leaf sample id = {self.sample_id}"


class ClusterNode(PHYNode):
    """
    A sub-population: one cluster of an SNV group.
    """
    
    def __init__(self, node_id : int, group : SNVGroup, 
                 cluster_index : int) -> None:
        """
        Args:
            node_id (int): id of the node in its network.
            group (SNVGroup): the group the cluster belongs to.
            cluster_index (int): index into group.clusters.
        Raises:
            NodeError: if the cluster index is out of range.
        """
        if not 0 <= cluster_index < len(group.clusters):
            raise NodeError(f"Group '{group.tag}' has no cluster \
{cluster_index}")
        super().__init__(node_id, group.num_samples)
        self.group : SNVGroup = group
        self.cluster_index : int = cluster_index
    
    @property
    def cluster(self) -> Cluster:
        return self.group.clusters[self.cluster_index]
    
    def aaf(self, sample_id : int) -> float:
        index = self.group.sample_index(sample_id)
        if index == -1:
            return 0.0
        return float(self.cluster.centroid[index])
    
    def std_dev(self, sample_id : int) -> float:
        index = self.group.sample_index(sample_id)
        if index == -1 or self.cluster.std_dev is None:
            return 0.0
        return float(self.cluster.std_dev[index])
    
    def std_error(self, sample_id : int) -> float | None:
        index = self.group.sample_index(sample_id)
        if index == -1:
            return 0.0
        return self.cluster.std_error(index)
    
    def label(self) -> str:
        return f"{self._id}: \n{self.group.tag}\n({self.cluster.member_count})"
    
    def long_label(self) -> str:
        return f"Group: {self.group.tag}\n{self.cluster}"
    
    def __str__(self) -> str:
        return f"Node {self._id}: group tag = {self.group.tag}, {self.cluster}"


@dataclass(frozen=True)
class Edge:
    """
    A directed edge between two node ids, src happened before dest.
    Edges compare equal iff both endpoints are equal.
    """
    src : int
    dest : int
    
    def as_tuple(self) -> tuple[int, int]:
        return (self.src, self.dest)


##########################
#### HELPER FUNCTIONS ####
##########################

def node_id(node : PHYNode | int) -> int:
    """
    Accept either a node or a raw id, and return the id.

    Args:
        node (PHYNode | int): a node, or its id.
    Returns:
        int: the node id.
    """
    if isinstance(node, PHYNode):
        return node.id
    return node

def aaf_error_margin(src : PHYNode, dest : PHYNode, sample_id : int, 
                     params : LineageParameters = DEFAULT_PARAMETERS) -> float:
    """
    The AAF error margin on the edge from 'src' to 'dest' in a sample.

    With a static margin this is simply params.aaf_error_margin. Otherwise it 
    is the sum of the two endpoints' standard errors, never less than the 
    fixed margin. The root contributes the fixed margin as its standard error.

    Args:
        src (PHYNode): the parent end of the edge.
        dest (PHYNode): the child end of the edge.
        sample_id (int): a sample id.
        params (LineageParameters, optional): settings. Defaults to 
                                              DEFAULT_PARAMETERS.
    Returns:
        float: the margin.
    """
    if params.static_error_margin:
        return params.aaf_error_margin
    
    src_error = src.std_error(sample_id)
    dest_error = dest.std_error(sample_id)
    if src_error is None:
        src_error = params.aaf_error_margin
    if dest_error is None:
        dest_error = params.aaf_error_margin
    
    return max(src_error + dest_error, params.aaf_error_margin)


#########################
#### NETWORK CLASSES ####
#########################

class ConstraintNetwork:
    """
    Directed constraint graph over sub-populations, samples and the germline
    root. Nodes are grouped by level and stored in an arena where a node's id
    is its index. Edges are kept as an ordered adjacency list per node id.
    
    Edges are only meant to point from a higher level to a lower level (or 
    between sub-populations of the same group), which the NetworkBuilder
    guarantees by the order in which it tests node pairs. 
    """

    def __init__(self, num_samples : int, 
                 params : LineageParameters = DEFAULT_PARAMETERS) -> None:
        """
        Initialize an empty network.

        Args:
            num_samples (int): total number of tissue samples.
            params (LineageParameters, optional): settings the network was 
                                                  built with. Defaults to 
                                                  DEFAULT_PARAMETERS.
        Raises:
            NetworkError: if num_samples is not positive.
        """
        if num_samples < 1:
            raise NetworkError(f"A network needs at least one sample, got \
{num_samples}")
        
        self.num_samples : int = num_samples
        self.params : LineageParameters = params
        
        # Node arena. node.id == index
        self.nodes : list[PHYNode] = []
        
        # Map levels to the nodes on that level, in creation order
        self.levels : dict[int, list[PHYNode]] = defaultdict(list)
        
        # Map node ids to the ids of their children, in insertion order
        self.edges : dict[int, list[int]] = defaultdict(list)
        
        self.num_edges : int = 0
        
        # Groups the network was built from, in build order
        self.groups : list[SNVGroup] = []
        
        self._root : RootNode = None
    
    ### Node creation ###
    
    def _register(self, node : PHYNode) -> PHYNode:
        self.nodes.append(node)
        self.levels[node.level].append(node)
        return node
    
    def add_root(self) -> RootNode:
        """
        Create the germline root.

        Raises:
            NetworkError: if the network already has a root.
        Returns:
            RootNode: the root.
        """
        if self._root is not None:
            raise NetworkError("This network already has a root!")
        self._root = self._register(RootNode(len(self.nodes), self.num_samples,
                                             self.params.aaf_max))
        return self._root
    
    def add_cluster_node(self, group : SNVGroup, 
                         cluster_index : int) -> ClusterNode:
        """
        Create a sub-population node for a cluster of a group.

        Args:
            group (SNVGroup): an SNV group.
            cluster_index (int): index into group.clusters.
        Raises:
            NetworkError: if the group's tag does not have one character per 
                          sample.
        Returns:
            ClusterNode: the new node.
        """
        if group.num_samples_total != self.num_samples:
            raise NetworkError(f"Group '{group.tag}' describes \
{group.num_samples_total} samples, but the network has {self.num_samples}")
        return self._register(ClusterNode(len(self.nodes), group, 
                                          cluster_index))
    
    def add_sample_node(self, sample_id : int) -> SampleNode:
        """
        Create the leaf node of a tissue sample.

        Args:
            sample_id (int): id of the sample, from 0 to num_samples - 1.
        Raises:
            NetworkError: if the sample id is out of range.
        Returns:
            SampleNode: the new node.
        """
        if not 0 <= sample_id < self.num_samples:
            raise NetworkError(f"Sample id {sample_id} is out of range")
        return self._register(SampleNode(len(self.nodes), sample_id))
    
    ### Edges ###
    
    def add_edge(self, src : PHYNode | int, dest : PHYNode | int) -> bool:
        """
        Add the edge src -> dest. Adding an existing edge has no effect.

        Args:
            src (PHYNode | int): parent node, or its id.
            dest (PHYNode | int): child node, or its id.
        Raises:
            EdgeError: if either end is not a node of this network.
        Returns:
            bool: True if the edge was new.
        """
        src, dest = node_id(src), node_id(dest)
        if not (0 <= src < len(self.nodes) and 0 <= dest < len(self.nodes)):
            raise EdgeError(f"Tried to add the edge {src} -> {dest}, but at \
least one end does not belong to this network.")
        if src == dest:
            raise EdgeError(f"Self loop on node {src} is not allowed")
        
        children = self.edges[src]
        if dest in children:
            return False
        children.append(dest)
        self.num_edges += 1
        return True
    
    def remove_edge(self, src : PHYNode | int, dest : PHYNode | int) -> bool:
        """
        Remove the edge src -> dest. Has no effect if the edge is absent.

        Returns:
            bool: True if an edge was removed.
        """
        src, dest = node_id(src), node_id(dest)
        children = self.edges.get(src)
        if children is None or dest not in children:
            return False
        children.remove(dest)
        self.num_edges -= 1
        return True
    
    def has_edge(self, src : PHYNode | int, dest : PHYNode | int) -> bool:
        children = self.edges.get(node_id(src))
        return children is not None and node_id(dest) in children
    
    def get_edges(self) -> list[Edge]:
        """
        Returns:
            list[Edge]: every edge, grouped by source in insertion order.
        """
        return [Edge(src, dest) for src, children in self.edges.items() 
                for dest in children]
    
    def adjacency(self) -> dict[int, list[int]]:
        """
        Copy the adjacency map, so that it may be modified freely (ie as the
        residual graph of a spanning tree search).

        Returns:
            dict[int, list[int]]: node id to list of child ids, with an entry 
                                  for every node.
        """
        return {node.id : list(self.edges.get(node.id, [])) 
                for node in self.nodes}
    
    ### Lookups ###
    
    @property
    def num_nodes(self) -> int:
        return len(self.nodes)
    
    def node(self, nid : int) -> PHYNode:
        """
        Args:
            nid (int): a node id.
        Raises:
            NodeError: if no node has the id.
        Returns:
            PHYNode: the node.
        """
        if not 0 <= nid < len(self.nodes):
            raise NodeError(f"No node with id {nid} in this network")
        return self.nodes[nid]
    
    def root(self) -> RootNode:
        """
        Raises:
            NetworkError: if the root has not been created.
        Returns:
            RootNode: the germline root.
        """
        if self._root is None:
            raise NetworkError("This network has no root!")
        return self._root
    
    def get_children(self, node : PHYNode | int) -> list[PHYNode]:
        return [self.nodes[c] for c in self.edges.get(node_id(node), [])]
    
    def get_parents(self, node : PHYNode | int) -> list[PHYNode]:
        nid = node_id(node)
        return [self.nodes[src] for src, children in self.edges.items() 
                if nid in children]
    
    def in_degree(self, node : PHYNode | int) -> int:
        return len(self.get_parents(node))
    
    def out_degree(self, node : PHYNode | int) -> int:
        return len(self.edges.get(node_id(node), []))
    
    def level_nodes(self, level : int) -> list[PHYNode]:
        """
        Returns:
            list[PHYNode]: the nodes on a level (empty if there are none).
        """
        return list(self.levels.get(level, []))
    
    def non_empty_levels(self) -> list[int]:
        """
        Returns:
            list[int]: levels that hold nodes, highest first.
        """
        return sorted((lvl for lvl, nodes in self.levels.items() if nodes), 
                      reverse = True)
    
    def get_leaves(self) -> list[SampleNode]:
        return [node for node in self.nodes if node.is_leaf()]
    
    def cluster_nodes(self) -> list[ClusterNode]:
        return [node for node in self.nodes 
                if not node.is_leaf() and not node.is_root()]
    
    def orphans(self) -> list[PHYNode]:
        """
        Find the non-root nodes that no edge points to.

        Returns:
            list[PHYNode]: nodes with no incoming edge, in id order.
        """
        mask = np.zeros(len(self.nodes), dtype = bool)
        for children in self.edges.values():
            mask[children] = True
        return [node for node in self.nodes 
                if not mask[node.id] and not node.is_root()]
    
    ### Conversion and display ###
    
    def to_networkx(self) -> nx.DiGraph:
        """
        Export the network as a networkx DiGraph keyed by node id. Each node 
        carries 'level' and 'label' attributes.

        Returns:
            nx.DiGraph: the exported graph.
        """
        nx_network = nx.DiGraph()
        for node in self.nodes:
            nx_network.add_node(node.id, level = node.level, 
                                label = node.label())
        nx_network.add_edges_from([edge.as_tuple() 
                                   for edge in self.get_edges()])
        return nx_network
    
    def __str__(self) -> str:
        graph = "--- PHYLOGENETIC CONSTRAINT GRAPH --- \n"
        graph += f"numNodes = {self.num_nodes}, "
        graph += f"numEdges = {self.num_edges}\n"
        
        graph += "NODES: \n"
        for level in range(self.num_samples + 1, -1, -1):
            graph += f"level = {level}: \n"
            for node in self.levels.get(level, []):
                graph += str(node) + "\n"
        
        graph += "EDGES: \n"
        for edge in self.get_edges():
            graph += f"{edge.src} -> {edge.dest}\n"
        return graph
    
    def nodes_as_string(self) -> str:
        """
        Tabulate the sub-population nodes: tag, cluster size and centroid, one
        node per line, highest level first.

        Returns:
            str: the table.
        """
        lines = []
        for level in self.non_empty_levels():
            for node in self.levels[level]:
                if not isinstance(node, ClusterNode):
                    continue
                centroid = "\t".join(f"{aaf:.2f}" 
                                     for aaf in node.cluster.centroid)
                lines.append(f"{node.group.tag}\t\
{node.cluster.member_count}\t{centroid}")
        return "\n".join(lines) + ("\n" if lines else "")

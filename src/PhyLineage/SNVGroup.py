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
Design - [ ]

Input records for the lineage pipeline. SNVs are partitioned into groups by
the set of samples they occur in; each group is identified by a binary tag
(one character per sample, '1' if the group's SNVs are present in that 
sample). Given S samples there are at most 2^S groups. The SNVs of a group 
are clustered into sub-populations upstream, and each sub-population becomes 
a node of the constraint network.
"""

from __future__ import annotations
import numpy as np


#############################
#### EXCEPTION SPECIFICS ####
#############################

class LineageDataError(Exception):
    """
    This exception is raised when the input groups or clusters are malformed,
    ie a tag that is not binary, or a centroid whose length does not match the
    number of samples its group covers.
    """
    def __init__(self, message : str = "Malformed lineage input data") -> None:
        self.message = message
        super().__init__(self.message)


#################
#### CLUSTER ####
#################

class Cluster:
    """
    A sub-population of an SNV group: the mean AAF of its member SNVs in every
    sample the group covers (the centroid), the per-sample standard 
    deviation if it is known, and the number of member SNVs.
    """
    
    def __init__(self, centroid : list[float] | np.ndarray, 
                 std_dev : list[float] | np.ndarray | None = None,
                 member_count : int = 0, cluster_id : int = 0) -> None:
        """
        Args:
            centroid (list[float] | np.ndarray): mean AAF per covered sample.
            std_dev (list[float] | np.ndarray | None, optional): standard 
                            deviation per covered sample. Defaults to None 
                            (statistics unavailable).
            member_count (int, optional): number of SNVs in the cluster. 
                                          Defaults to 0.
            cluster_id (int, optional): id of the cluster, unique per group.
                                        Defaults to 0.
        Raises:
            LineageDataError: if the arrays are not one dimensional, differ in
                              length, or the member count is negative.
        """
        self.centroid : np.ndarray = np.asarray(centroid, dtype = float)
        if std_dev is None:
            self.std_dev : np.ndarray | None = None
        else:
            self.std_dev = np.asarray(std_dev, dtype = float)
        self.member_count : int = int(member_count)
        self.cluster_id : int = cluster_id
        
        if self.centroid.ndim != 1:
            raise LineageDataError("Cluster centroid must be a flat vector \
of AAF values")
        if self.std_dev is not None and self.std_dev.shape != self.centroid.shape:
            raise LineageDataError(f"Cluster {cluster_id} has a centroid of \
length {len(self.centroid)} but a standard deviation vector of length \
{len(self.std_dev)}")
        if self.member_count < 0:
            raise LineageDataError(f"Cluster {cluster_id} has a negative \
member count")
    
    def has_statistics(self) -> bool:
        """
        Returns:
            bool: True if a standard deviation vector and members are known.
        """
        return self.std_dev is not None and self.member_count > 0
    
    def std_error(self, index : int) -> float:
        """
        The 95% confidence half-width of the centroid value at 'index', 
        1.96 * stddev / sqrt(member count). 0 if no statistics are available.

        Args:
            index (int): position in the centroid vector.
        Returns:
            float: the standard error term.
        """
        if not self.has_statistics():
            return 0.0
        return 1.96 * float(self.std_dev[index]) / np.sqrt(self.member_count)
    
    def __str__(self) -> str:
        centroid = ", ".join(f"{aaf:.2f}" for aaf in self.centroid)
        desc = f"size = {self.member_count}, centroid = [{centroid}]"
        if self.std_dev is not None:
            std = ", ".join(f"{sd:.2f}" for sd in self.std_dev)
            desc += f", stddev = [{std}]"
        return desc


###################
#### SNV GROUP ####
###################

class SNVGroup:
    """
    A set of SNVs that occur in the same subset of samples, along with the
    sub-population clusters found among them.
    """

    def __init__(self, tag : str, clusters : list[Cluster], 
                 is_robust : bool = False, num_snvs : int = None) -> None:
        """
        Args:
            tag (str): binary presence string, one character per sample.
            clusters (list[Cluster]): sub-populations of the group. Centroids 
                                      are indexed by covered sample, in tag 
                                      order.
            is_robust (bool, optional): True if the group is well supported 
                                        and must never be dropped during 
                                        network repair. Defaults to False.
            num_snvs (int, optional): number of SNVs in the group. Defaults to
                                      the sum of the cluster member counts.
        Raises:
            LineageDataError: on a malformed tag, an empty cluster list, or a
                              cluster whose length does not match the number
                              of samples covered by the tag.
        """
        if len(tag) == 0 or any(bit not in "01" for bit in tag):
            raise LineageDataError(f"Group tag '{tag}' must be a non-empty \
string of '0' and '1' characters")
        
        self.tag : str = tag
        self.is_robust : bool = is_robust
        
        # Covered sample ids in tag order, and the reverse lookup
        self.samples : list[int] = [i for i, bit in enumerate(tag) 
                                    if bit == "1"]
        self._index : dict[int, int] = {sample : pos for pos, sample 
                                        in enumerate(self.samples)}
        
        if len(self.samples) == 0:
            raise LineageDataError(f"Group tag '{tag}' does not cover any \
sample")
        if len(clusters) == 0:
            raise LineageDataError(f"Group '{tag}' has no sub-population \
clusters")
        
        for cluster in clusters:
            if len(cluster.centroid) != len(self.samples):
                raise LineageDataError(f"Cluster {cluster.cluster_id} of \
group '{tag}' has {len(cluster.centroid)} centroid values, but the group \
covers {len(self.samples)} samples")
        
        self.clusters : list[Cluster] = list(clusters)
        
        if num_snvs is None:
            self.num_snvs : int = sum(c.member_count for c in self.clusters)
        else:
            self.num_snvs = num_snvs
    
    @classmethod
    def from_centroid(cls, tag : str, centroid : list[float], 
                      size : int) -> SNVGroup:
        """
        Build a robust, single-cluster group from a centroid that is indexed 
        by ALL samples (not just the covered ones). Values of uncovered 
        samples are dropped.

        Args:
            tag (str): binary presence string.
            centroid (list[float]): AAF per sample, length len(tag).
            size (int): number of SNVs represented.
        Raises:
            LineageDataError: if the centroid and tag lengths differ.
        Returns:
            SNVGroup: the new group.
        """
        if len(centroid) != len(tag):
            raise LineageDataError(f"Centroid of length {len(centroid)} does \
not match tag '{tag}'")
        
        covered = [aaf for aaf, bit in zip(centroid, tag) if bit == "1"]
        return cls(tag, [Cluster(covered, None, size)], True, size)
    
    @property
    def num_samples(self) -> int:
        """
        Returns:
            int: the number of samples this group's SNVs occur in.
        """
        return len(self.samples)
    
    @property
    def num_samples_total(self) -> int:
        """
        Returns:
            int: the total number of samples (the tag length).
        """
        return len(self.tag)
    
    def sample_index(self, sample_id : int) -> int:
        """
        Map a sample id onto a position in this group's centroid vectors.

        Args:
            sample_id (int): a sample id, from 0 to len(tag) - 1.
        Returns:
            int: the position, or -1 if the group does not cover the sample.
        """
        return self._index.get(sample_id, -1)
    
    def contains_sample(self, sample_id : int) -> bool:
        """
        Args:
            sample_id (int): a sample id.
        Returns:
            bool: True if the group's SNVs occur in the sample.
        """
        return sample_id in self._index
    
    def __repr__(self) -> str:
        return f"SNVGroup({self.tag}, clusters={len(self.clusters)}, \
snvs={self.num_snvs}, robust={self.is_robust})"

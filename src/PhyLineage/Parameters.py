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

Settings that control constraint network construction, spanning tree search
and tree ranking. A LineageParameters object is handed to every component at
construction time; nothing reads global state.
"""

from __future__ import annotations
from dataclasses import dataclass, replace as dc_replace


#############################
#### EXCEPTION SPECIFICS ####
#############################

class ParameterError(Exception):
    """
    This exception is raised when a LineageParameters object holds values that
    the search or the constraint checks cannot work with.
    """
    def __init__(self, message : str = "Invalid lineage parameters") -> None:
        self.message = message
        super().__init__(self.message)


####################
#### PARAMETERS ####
####################

@dataclass(frozen=True)
class LineageParameters:
    """
    Immutable bag of settings for the lineage pipeline.

    aaf_max : AAF assigned to the germline root in every sample.
    aaf_error_margin : fixed error margin used when comparing AAF centroids.
                       When cluster statistics are available it is the floor
                       of the confidence-based margin.
    static_error_margin : if True, always use aaf_error_margin as is.
    all_edges : if True, test every pair of levels when adding network edges,
                not only adjacent non-empty levels.
    max_num_trees : stop the spanning tree search once this many trees have 
                    been found.
    max_num_grow_calls : stop the spanning tree search after this many
                         recursive grow steps.
    """
    aaf_max : float = 0.5
    aaf_error_margin : float = 0.1
    static_error_margin : bool = False
    all_edges : bool = False
    max_num_trees : int = 100000
    max_num_grow_calls : int = 100000000
    
    def validate(self) -> LineageParameters:
        """
        Check that every setting is usable.

        Raises:
            ParameterError: if a setting is out of range.
        Returns:
            LineageParameters: this object, for chaining.
        """
        if self.aaf_max <= 0:
            raise ParameterError(f"aaf_max must be positive, got \
{self.aaf_max}")
        if self.aaf_error_margin < 0:
            raise ParameterError(f"aaf_error_margin must be non-negative, \
got {self.aaf_error_margin}")
        if self.max_num_trees < 1:
            raise ParameterError(f"max_num_trees must be at least 1, got \
{self.max_num_trees}")
        if self.max_num_grow_calls < 1:
            raise ParameterError(f"max_num_grow_calls must be at least 1, \
got {self.max_num_grow_calls}")
        return self
    
    def replace(self, **changes) -> LineageParameters:
        """
        Make a copy of these parameters with some fields changed.

        Args:
            **changes: field name to new value.
        Returns:
            LineageParameters: the updated (and validated) copy.
        """
        return dc_replace(self, **changes).validate()
    
    def cp_mode(self) -> LineageParameters:
        """
        Parameters for input given as cell prevalence rather than allele 
        frequency, where a clonal population reaches 1.0 instead of 0.5.

        Returns:
            LineageParameters: the updated copy.
        """
        return self.replace(aaf_max = 1.0)


DEFAULT_PARAMETERS : LineageParameters = LineageParameters()

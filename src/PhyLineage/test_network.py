import dataclasses
import networkx as nx
import pytest
from PhyLineage.Parameters import LineageParameters, ParameterError, \
                                  DEFAULT_PARAMETERS
from PhyLineage.SNVGroup import Cluster, SNVGroup, LineageDataError
from PhyLineage.Network import ConstraintNetwork, ClusterNode, \
                               NetworkError, NodeError, EdgeError, \
                               aaf_error_margin
from PhyLineage.NetworkBuilder import NetworkBuilder, build_network, \
                                      FORWARD, REVERSE, NO_EDGE


#######################
#### TEST NETWORKS ####
#######################

def build_two_sample_groups() -> list[SNVGroup]:
    """
    A clonal group present in both samples, and one private group per sample
    whose frequencies fit inside it exactly.
    """
    return [_group("11", [0.5, 0.5], size = 10),
            _group("10", [0.3], size = 4),
            _group("01", [0.2], size = 3)]

def build_two_sample_network() -> ConstraintNetwork:
    """
    root(0) -> 11(1) -> {10(2), 01(3)}, 10 -> sample 0 (4), 01 -> sample 1 (5)
    """
    net = build_network(build_two_sample_groups(), 2)
    assert net.num_nodes == 6
    assert len(net.get_leaves()) == 2
    return net

def build_single_group_network() -> ConstraintNetwork:
    """
    A lone private group: sample 1 has no sub-population above it at all.
    """
    return build_network([_group("10", [0.3], size = 4)], 2)


#################
#### HELPERS ####
#################

def _group(tag : str, centroid : list[float], size : int = 1, 
           robust : bool = False) -> SNVGroup:
    return SNVGroup(tag, [Cluster(centroid, None, size)], robust)

def _edges(net : ConstraintNetwork) -> set[tuple[int, int]]:
    return {edge.as_tuple() for edge in net.get_edges()}


####################
#### PARAMETERS ####
####################

def test_default_parameters():
    params = LineageParameters()
    assert params == DEFAULT_PARAMETERS
    assert params.aaf_max == 0.5
    assert params.aaf_error_margin == 0.1
    assert not params.static_error_margin
    assert not params.all_edges
    assert params.validate() is params

def test_parameters_are_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULT_PARAMETERS.aaf_max = 1.0

def test_parameter_replace():
    params = DEFAULT_PARAMETERS.replace(max_num_trees = 5)
    assert params.max_num_trees == 5
    assert DEFAULT_PARAMETERS.max_num_trees == 100000
    assert DEFAULT_PARAMETERS.cp_mode().aaf_max == 1.0

@pytest.mark.parametrize("changes", [{"aaf_max" : 0},
                                     {"aaf_error_margin" : -0.1},
                                     {"max_num_trees" : 0},
                                     {"max_num_grow_calls" : 0}])
def test_invalid_parameters(changes):
    with pytest.raises(ParameterError):
        DEFAULT_PARAMETERS.replace(**changes)


###################
#### SNV GROUP ####
###################

def test_group_sample_lookup():
    group = _group("1011", [0.1, 0.2, 0.3], size = 7)
    assert group.num_samples == 3
    assert group.num_samples_total == 4
    assert group.samples == [0, 2, 3]
    assert group.sample_index(2) == 1
    assert group.sample_index(1) == -1
    assert not group.contains_sample(1)
    assert group.num_snvs == 7
    assert not group.is_robust

def test_group_from_centroid():
    group = SNVGroup.from_centroid("101", [0.4, 0.0, 0.2], 12)
    assert group.is_robust
    assert group.num_snvs == 12
    assert list(group.clusters[0].centroid) == [0.4, 0.2]

def test_cluster_std_error():
    cluster = Cluster([0.3, 0.4], [0.1, 0.2], member_count = 4)
    assert cluster.has_statistics()
    assert cluster.std_error(0) == pytest.approx(1.96 * 0.1 / 2)
    assert Cluster([0.3]).std_error(0) == 0.0

@pytest.mark.parametrize("tag", ["", "012", "00"])
def test_malformed_tag(tag):
    with pytest.raises(LineageDataError):
        SNVGroup(tag, [Cluster([0.1])])

def test_malformed_clusters():
    with pytest.raises(LineageDataError):
        SNVGroup("11", [])
    with pytest.raises(LineageDataError):
        SNVGroup("11", [Cluster([0.5])])
    with pytest.raises(LineageDataError):
        Cluster([0.5, 0.5], [0.1])
    with pytest.raises(LineageDataError):
        Cluster([0.5], member_count = -1)
    with pytest.raises(LineageDataError):
        SNVGroup.from_centroid("11", [0.5], 3)


#################
#### NETWORK ####
#################

def test_network_levels():
    net = build_two_sample_network()
    root = net.root()
    assert root.id == 0 and root.level == 3 and root.aaf(1) == 0.5
    assert [node.id for node in net.level_nodes(2)] == [1]
    assert [node.id for node in net.level_nodes(1)] == [2, 3]
    assert [node.sample_id for node in net.get_leaves()] == [0, 1]
    assert net.non_empty_levels() == [3, 2, 1, 0]
    assert len(net.cluster_nodes()) == 3

def test_network_edges():
    net = build_two_sample_network()
    assert _edges(net) == {(0, 1), (1, 2), (1, 3), (2, 4), (3, 5)}
    assert net.num_edges == 5
    assert net.orphans() == []
    assert [p.id for p in net.get_parents(2)] == [1]
    assert net.out_degree(1) == 2 and net.in_degree(4) == 1

def test_network_misuse():
    net = build_two_sample_network()
    with pytest.raises(NodeError):
        net.node(6)
    with pytest.raises(EdgeError):
        net.add_edge(0, 6)
    with pytest.raises(EdgeError):
        net.add_edge(1, 1)
    with pytest.raises(NetworkError):
        net.add_root()
    with pytest.raises(NetworkError):
        ConstraintNetwork(2).root()
    with pytest.raises(NetworkError):
        ConstraintNetwork(0)

def test_add_remove_edge():
    net = build_two_sample_network()
    assert not net.add_edge(0, 1)
    assert net.add_edge(0, 2)
    assert net.has_edge(0, 2) and net.num_edges == 6
    assert net.remove_edge(0, 2)
    assert not net.remove_edge(0, 2)
    assert net.num_edges == 5

def test_adjacency_is_a_copy():
    net = build_two_sample_network()
    adj = net.adjacency()
    assert set(adj.keys()) == set(range(6))
    assert adj[4] == []
    adj[0].append(3)
    assert not net.has_edge(0, 3)

def test_to_networkx():
    g = build_two_sample_network().to_networkx()
    assert g.number_of_nodes() == 6 and g.number_of_edges() == 5
    assert g.nodes[0]["label"] == "germline"
    assert g.nodes[5]["level"] == 0
    assert nx.is_arborescence(g)

def test_network_text():
    net = build_two_sample_network()
    text = str(net)
    assert "numNodes = 6, numEdges = 5" in text
    assert "0 -> 1\n" in text
    assert "Node 0: germline" in text
    assert net.nodes_as_string().splitlines()[0] == "11\t10\t0.50\t0.50"
    assert len(net.nodes_as_string().splitlines()) == 3

def test_node_labels():
    net = build_two_sample_network()
    node = net.node(2)
    assert isinstance(node, ClusterNode)
    assert node.label() == "2: \n10\n(4)"
    assert node.aaf(0) == 0.3 and node.aaf(1) == 0.0
    assert net.node(4).label() == "sample 0"


########################
#### ERROR MARGINS #####
########################

def test_error_margin_floor():
    net = build_two_sample_network()
    root, clonal = net.node(0), net.node(1)
    assert aaf_error_margin(clonal, net.node(2), 0) == 0.1
    assert aaf_error_margin(root, clonal, 0) == pytest.approx(0.1)

def test_error_margin_from_statistics():
    net = ConstraintNetwork(1)
    a = net.add_cluster_node(SNVGroup("1", [Cluster([0.4], [0.2], 4)]), 0)
    b = net.add_cluster_node(SNVGroup("1", [Cluster([0.3], [0.1], 4)]), 0)
    expected = 1.96 * 0.2 / 2 + 1.96 * 0.1 / 2
    assert aaf_error_margin(a, b, 0) == pytest.approx(expected)
    static = DEFAULT_PARAMETERS.replace(static_error_margin = True)
    assert aaf_error_margin(a, b, 0, static) == 0.1


#########################
#### NETWORK BUILDER ####
#########################

def test_orientation():
    groups = [_group("11", [0.5, 0.5]), _group("11", [0.2, 0.2]), 
              _group("10", [0.35])]
    builder = NetworkBuilder(groups, 2)
    net = builder.build()
    root, big, small, private = net.nodes[:4]
    
    assert builder.orientation(big, small) == FORWARD
    assert builder.orientation(small, big) == REVERSE
    assert builder.orientation(root, big) == FORWARD
    assert builder.orientation(small, root) == REVERSE
    # absent in sample 1, and too frequent in sample 0
    assert builder.orientation(private, small) == NO_EDGE
    assert builder.orientation(private, net.nodes[5]) == NO_EDGE
    assert builder.orientation(private, net.nodes[4]) == FORWARD

def test_no_edge_into_root():
    builder = NetworkBuilder([_group("11", [0.6, 0.6])], 2)
    net = builder.build()
    assert builder.orientation(net.root(), net.node(1)) == NO_EDGE
    # the orphaned clone still hangs off the germline
    assert net.has_edge(0, 1)
    assert net.in_degree(0) == 0

def test_orientation_tie():
    groups = [_group("11", [0.4, 0.4]), _group("11", [0.4, 0.4])]
    builder = NetworkBuilder(groups, 2)
    net = builder.build()
    a, b = net.node(1), net.node(2)
    assert builder.orientation(a, b) == FORWARD
    assert builder.orientation(b, a) == FORWARD

def test_intra_group_edges():
    group = SNVGroup("11", [Cluster([0.4, 0.4], None, 3), 
                            Cluster([0.3, 0.35], None, 2)])
    net = build_network([group], 2)
    assert net.has_edge(1, 2)
    assert not net.has_edge(2, 1)

def test_connectivity_repair():
    net = build_single_group_network()
    assert net.orphans() == []
    # sample 1 only has the germline above it
    assert _edges(net) == {(0, 1), (1, 2), (0, 3)}
    g = net.to_networkx()
    assert nx.descendants(g, 0) == {1, 2, 3}

def test_connectivity_repair_skips_closer_levels():
    groups = [_group("11", [0.4, 0.4]), _group("10", [0.3]), 
              _group("10", [0.2])]
    net = build_network(groups, 2)
    # sample 1 is not reachable from level 1, so the clonal node adopts it
    assert [p.id for p in net.get_parents(5)] == [1]
    assert net.orphans() == []

def test_all_edges_mode():
    groups = [_group("11", [0.4, 0.4]), _group("10", [0.2])]
    assert not build_network(groups, 2).has_edge(0, 2)
    
    complete = build_network(groups, 2, 
                             DEFAULT_PARAMETERS.replace(all_edges = True))
    assert complete.has_edge(0, 2)
    assert complete.has_edge(1, 2)

def test_build_network_input_checks():
    with pytest.raises(LineageDataError):
        build_network([], 2)
    with pytest.raises(LineageDataError):
        build_network(build_two_sample_groups(), 0)
    with pytest.raises(LineageDataError):
        build_network([_group("111", [0.5, 0.5, 0.5])], 2)
    with pytest.raises(ParameterError):
        build_network(build_two_sample_groups(), 2, 
                      LineageParameters(max_num_trees = 0))

def test_builder_accepts_no_groups():
    net = NetworkBuilder([], 2).build()
    assert net.num_nodes == 3
    assert _edges(net) == {(0, 1), (0, 2)}

import itertools
import networkx as nx
import pytest
from PhyLineage.Parameters import DEFAULT_PARAMETERS
from PhyLineage.SNVGroup import Cluster, SNVGroup
from PhyLineage.Network import ConstraintNetwork, Edge
from PhyLineage.NetworkBuilder import build_network
from PhyLineage.LineageTree import PHYTree
from PhyLineage.SpanningTrees import SpanningTreeEnumerator, \
                                     SearchTruncatedWarning, \
                                     enumerate_spanning_trees
from PhyLineage.GraphUtils import is_spanning_tree, all_trees_distinct, \
                                  count_spanning_trees


#######################
#### TEST NETWORKS ####
#######################

def build_chain_network() -> ConstraintNetwork:
    """
    root -> 11 -> {10, 01} -> samples. Exactly one spanning tree.
    """
    groups = [_group("11", [0.5, 0.5]), _group("10", [0.3]), 
              _group("01", [0.2])]
    return build_network(groups, 2)

def build_dense_network() -> ConstraintNetwork:
    """
    Three clones that may descend from each other in any order, all reachable
    from the germline. Sample 1 may hang off either of two clones.
    
    16 orderings of the clones (rooted trees on 4 labeled nodes) times 2 
    choices for sample 1 = 32 spanning trees.
    """
    net = ConstraintNetwork(2)
    root = net.add_root()
    clones = [net.add_cluster_node(_group("11", [0.3, 0.3]), 0) 
              for _ in range(3)]
    samples = [net.add_sample_node(s) for s in range(2)]
    
    for clone in clones:
        net.add_edge(root, clone)
    for a, b in itertools.permutations(clones, 2):
        net.add_edge(a, b)
    net.add_edge(clones[0], samples[0])
    net.add_edge(clones[1], samples[1])
    net.add_edge(clones[2], samples[1])
    return net

def build_layered_network() -> ConstraintNetwork:
    """
    Built by the network builder with every level pair tested, so that clones
    have parents on several levels.
    """
    groups = [_group("111", [0.45, 0.45, 0.45]),
              _group("111", [0.4, 0.35, 0.4]),
              _group("110", [0.2, 0.15]),
              _group("011", [0.1, 0.2]),
              _group("100", [0.1]),
              _group("001", [0.05])]
    return build_network(groups, 3, 
                         DEFAULT_PARAMETERS.replace(all_edges = True))

def build_unreachable_network() -> ConstraintNetwork:
    """
    A clone that no edge points to.
    """
    net = ConstraintNetwork(1)
    root = net.add_root()
    clone = net.add_cluster_node(_group("1", [0.2]), 0)
    leaf = net.add_sample_node(0)
    net.add_edge(root, leaf)
    net.add_edge(clone, leaf)
    return net


#################
#### HELPERS ####
#################

def _group(tag : str, centroid : list[float]) -> SNVGroup:
    return SNVGroup(tag, [Cluster(centroid, None, 1)])

def _check_trees(net : ConstraintNetwork, trees : list[PHYTree]) -> None:
    for tree in trees:
        assert is_spanning_tree(tree, net)
        parents = [dest for _, dest in tree.edges()]
        assert len(parents) == len(set(parents)) == net.num_nodes - 1
        assert set(tree.tree_nodes) == set(range(net.num_nodes))
    assert all_trees_distinct(trees)

def _brute_force_count(net : ConstraintNetwork) -> int:
    """
    Count spanning trees by trying every choice of one parent per node.
    """
    root = net.root().id
    choices = [[p.id for p in net.get_parents(node)] 
               for node in net.nodes if node.id != root]
    count = 0
    for picks in itertools.product(*choices):
        g = nx.DiGraph()
        g.add_nodes_from(range(net.num_nodes))
        others = [node.id for node in net.nodes if node.id != root]
        g.add_edges_from(zip(picks, others))
        if nx.is_arborescence(g):
            count += 1
    return count


##########################
#### MATRIX-TREE COUNT ###
##########################

def test_count_spanning_trees():
    assert count_spanning_trees(build_chain_network()) == 1
    assert count_spanning_trees(build_dense_network()) == 32
    assert count_spanning_trees(build_unreachable_network()) == 0

def test_count_matches_brute_force():
    net = build_layered_network()
    assert count_spanning_trees(net) == _brute_force_count(net)


####################
#### ENUMERATOR ####
####################

def test_single_tree():
    net = build_chain_network()
    report = enumerate_spanning_trees(net)
    assert not report.truncated and report.reason is None
    assert len(report.trees) == 1
    assert report.trees[0].edge_set() == frozenset(
        {(0, 1), (1, 2), (1, 3), (2, 4), (3, 5)})
    _check_trees(net, report.trees)

def test_dense_network():
    net = build_dense_network()
    trees = enumerate_spanning_trees(net).trees
    assert len(trees) == 32
    _check_trees(net, trees)

def test_layered_network():
    net = build_layered_network()
    trees = enumerate_spanning_trees(net).trees
    assert len(trees) == count_spanning_trees(net)
    assert len(trees) > 1
    _check_trees(net, trees)

def test_trees_are_arborescences():
    net = build_dense_network()
    for tree in enumerate_spanning_trees(net).trees:
        g = tree.to_networkx()
        assert nx.is_arborescence(g)
        assert set(g.edges()) <= set(net.to_networkx().edges())

def test_no_spanning_tree():
    net = build_unreachable_network()
    report = enumerate_spanning_trees(net)
    assert report.trees == []
    assert not report.truncated

def test_search_state_restored():
    net = build_dense_network()
    before = net.adjacency()
    enumerator = SpanningTreeEnumerator(net)
    enumerator.enumerate()
    
    assert enumerator._residual == before
    assert enumerator._frontier == [Edge(0, c) for c in before[0]]
    assert net.adjacency() == before
    
    # a second run starts from scratch
    assert len(enumerator.enumerate().trees) == 32

def test_tree_budget():
    net = build_dense_network()
    params = DEFAULT_PARAMETERS.replace(max_num_trees = 5)
    with pytest.warns(SearchTruncatedWarning):
        report = enumerate_spanning_trees(net, params)
    assert report.truncated
    assert "5 trees" in report.reason
    assert len(report.trees) == 5
    _check_trees(net, report.trees)

def test_exact_tree_budget_not_truncated():
    net = build_dense_network()
    params = DEFAULT_PARAMETERS.replace(max_num_trees = 32)
    report = enumerate_spanning_trees(net, params)
    assert not report.truncated
    assert len(report.trees) == 32

def test_grow_call_budget():
    net = build_dense_network()
    params = DEFAULT_PARAMETERS.replace(max_num_grow_calls = 3)
    with pytest.warns(SearchTruncatedWarning):
        report = enumerate_spanning_trees(net, params)
    assert report.truncated
    assert report.trees == []
    assert report.grow_calls == 4


####################
#### TREE TYPE #####
####################

def test_tree_queries():
    net = build_chain_network()
    tree = enumerate_spanning_trees(net).trees[0]
    assert tree.root().id == 0
    assert tree.get_parent(0) is None
    assert tree.get_parent(4).id == 2
    assert [c.id for c in tree.get_children(1)] in ([2, 3], [3, 2])
    assert tree.is_descendant(1, 5)
    assert tree.is_descendant(0, 4)
    assert not tree.is_descendant(2, 5)
    assert not tree.is_descendant(4, 2)
    assert tree.contains_edge(1, 2) and not tree.contains_edge(2, 1)

def test_tree_clone_is_independent():
    net = build_chain_network()
    tree = enumerate_spanning_trees(net).trees[0]
    copy = tree.clone()
    copy.remove_edge(3, 5)
    assert len(copy) == 5 and len(tree) == 6
    assert not copy.contains_node(5)
    assert tree.contains_edge(3, 5)

def test_tree_text():
    net = build_chain_network()
    tree = enumerate_spanning_trees(net).trees[0]
    lines = str(tree).splitlines()
    assert len(lines) == 5
    assert "0\t1" in lines and "3\t5" in lines

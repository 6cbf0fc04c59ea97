"""
tests/test_io.py
================
phylo4 reader, target list reader and cluster table writer.
"""

import io
import logging
import os
import sys

import pytest

_HERE = os.path.dirname(__file__)
_TREES_DIR = os.path.join(_HERE, "trees")
_DATA_DIR = os.path.join(_HERE, "data")

sys.path.insert(0, os.path.dirname(_HERE))

from tcfinder._exceptions import (
    DanglingReferenceError,
    MalformedTreeError,
    Phylo4FormatError,
)
from tcfinder._io import read_phylo4, read_targets, write_cluster_table


# ======================================================================== #
# read_phylo4                                                               #
# ======================================================================== #


class TestReadPhylo4:
    def test_small_tree(self):
        tree = read_phylo4(os.path.join(_TREES_DIR, "small_8tip.csv"))
        assert tree.n_nodes == 15
        assert tree.n_tips == 8
        assert tree.labels[tree.find_root()] == "root"

    def test_accepts_pathlike(self, tmp_path):
        path = tmp_path / "tree.csv"
        path.write_text("label,node,ancestor,nodetype\nA,1,3,tip\nB,2,3,tip\n,3,0,root\n")
        tree = read_phylo4(path)
        assert tree.n_tips == 2

    def test_accepts_open_file(self):
        handle = io.StringIO("label,node,ancestor,nodetype\nA,1,3,tip\nB,2,3,tip\n,3,0,root\n")
        tree = read_phylo4(handle)
        assert tree.tip_labels(tree.find_root()) == ["A", "B"]

    def test_extra_columns_ignored(self):
        # small_8tip.csv carries edge.length, including an "NA" on the root
        tree = read_phylo4(os.path.join(_TREES_DIR, "small_8tip.csv"))
        assert tree.index_of(9) == 8

    def test_column_order_irrelevant(self):
        handle = io.StringIO("nodetype,ancestor,label,node\ntip,3,A,1\ntip,3,B,2\nroot,0,R,3\n")
        tree = read_phylo4(handle)
        assert tree.labels == ["A", "B", "R"]

    def test_missing_column(self):
        with pytest.raises(Phylo4FormatError, match="missing column.*ancestor"):
            read_phylo4(os.path.join(_TREES_DIR, "missing_column.csv"))

    def test_empty_file(self):
        with pytest.raises(Phylo4FormatError, match="no header"):
            read_phylo4(io.StringIO(""))

    def test_bad_integer(self):
        with pytest.raises(Phylo4FormatError, match="Line 3: column 'node'"):
            read_phylo4(os.path.join(_TREES_DIR, "bad_integer.csv"))

    def test_dangling_ancestor(self):
        with pytest.raises(DanglingReferenceError) as info:
            read_phylo4(os.path.join(_TREES_DIR, "dangling.csv"))
        assert info.value.node_id == 2
        assert info.value.ancestor_id == 4

    def test_format_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            read_phylo4(os.path.join(_TREES_DIR, "bad_integer.csv"))

    def test_header_only_has_no_root(self):
        with pytest.raises(MalformedTreeError, match="no root"):
            read_phylo4(io.StringIO("label,node,ancestor,nodetype\n"))

    def test_byte_order_mark(self, tmp_path):
        path = tmp_path / "excel.csv"
        path.write_bytes(
            b"\xef\xbb\xbflabel,node,ancestor,nodetype\r\nA,1,3,tip\r\nB,2,3,tip\r\n,3,0,root\r\n"
        )
        tree = read_phylo4(path)
        assert tree.labels == ["A", "B", ""]

    def test_utf8_labels(self, tmp_path):
        path = tmp_path / "tree.csv"
        path.write_bytes(
            "label,node,ancestor,nodetype\nSão_Paulo,1,3,tip\nZürich,2,3,tip\n,3,0,root\n".encode("utf-8")
        )
        tree = read_phylo4(path)
        assert tree.tip_labels(tree.find_root()) == ["São_Paulo", "Zürich"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            read_phylo4(tmp_path / "absent.csv")

    def test_logs_summary(self, caplog):
        with caplog.at_level(logging.INFO, logger="tcfinder"):
            read_phylo4(os.path.join(_TREES_DIR, "small_8tip.csv"))
        assert any("8 tips" in r.getMessage() for r in caplog.records)


# ======================================================================== #
# read_targets                                                              #
# ======================================================================== #


class TestReadTargets:
    def test_regression_targets(self):
        targets = read_targets(os.path.join(_DATA_DIR, "targets.txt"))
        assert len(targets) == 13
        assert targets[0] == "t100"

    def test_strips_and_skips_blank(self):
        assert read_targets(io.StringIO("  A \n\nB\r\n   \nC")) == ["A", "B", "C"]

    def test_duplicates_dropped_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="tcfinder"):
            targets = read_targets(io.StringIO("A\nB\nA\nA\n"))
        assert targets == ["A", "B"]
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "2 duplicate" in warnings[0].getMessage()

    def test_byte_order_mark(self, tmp_path):
        path = tmp_path / "targets.txt"
        path.write_bytes(b"\xef\xbb\xbfA\nB\n")
        assert read_targets(path) == ["A", "B"]

    def test_empty(self):
        assert read_targets(io.StringIO("")) == []


# ======================================================================== #
# write_cluster_table                                                       #
# ======================================================================== #


class TestWriteClusterTable:
    def test_rows(self, tmp_path):
        path = tmp_path / "clusters.csv"
        n = write_cluster_table([["A", "B"], ["C", "D", "E"]], path)
        assert n == 5
        assert path.read_text() == (
            "cluster_id,label\n"
            "1,A\n"
            "1,B\n"
            "2,C\n"
            "2,D\n"
            "2,E\n"
        )

    def test_no_clusters_writes_header(self):
        handle = io.StringIO()
        assert write_cluster_table([], handle) == 0
        assert handle.getvalue() == "cluster_id,label\n"

    def test_labels_needing_quotes(self):
        handle = io.StringIO()
        write_cluster_table([["a,b", "c"]], handle)
        assert handle.getvalue().splitlines()[1] == '1,"a,b"'

    def test_round_trip_through_reader(self, tmp_path):
        import csv

        path = tmp_path / "out.csv"
        write_cluster_table([["t100", "t35"], ["t21", "t47"]], path)
        with open(path, newline="") as fh:
            rows = list(csv.DictReader(fh))
        assert [(r["cluster_id"], r["label"]) for r in rows] == [
            ("1", "t100"),
            ("1", "t35"),
            ("2", "t21"),
            ("2", "t47"),
        ]

    def test_writes_utf8(self, tmp_path):
        path = tmp_path / "clusters.csv"
        write_cluster_table([["São_Paulo", "Zürich"]], path)
        assert path.read_bytes().decode("utf-8").splitlines() == [
            "cluster_id,label",
            "1,São_Paulo",
            "1,Zürich",
        ]
        assert not path.read_bytes().startswith(b"\xef\xbb\xbf")

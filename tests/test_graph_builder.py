"""Tests for building the dependency graph."""

import pytest

from dupetrace.graph_builder import DependencyGraphBuilder
from dupetrace.models import DependencyRef, MissingDependency, PackageId, PackageRecord, RootStrategy
from dupetrace.parsers import InputParseError


def record(name, version, *deps):
    return PackageRecord(name=name, version=version, system='cargo',
                         dependencies=[DependencyRef.parse(d) for d in deps])


def build(records, strategy=RootStrategy.INFERRED, roots=()):
    builder = DependencyGraphBuilder()
    builder.set_root_strategy(strategy)
    builder.set_roots([DependencyRef.parse(r) for r in roots])
    return builder.build(records)


class TestDependencyGraphBuilder:
    """Tests for the DependencyGraphBuilder class."""

    def test_one_node_per_name_and_version(self):
        graph = build([
            record("app", "0.1.0", "log 0.4.20", "log 0.3.9"),
            record("log", "0.4.20"),
            record("log", "0.3.9", "log 0.4.20"),
        ])

        assert len(graph) == 3
        assert PackageId("log", "0.4.20") in graph
        assert PackageId("log", "0.3.9") in graph
        assert graph.children(PackageId("app", "0.1.0")) == (
            PackageId("log", "0.3.9"), PackageId("log", "0.4.20")
        )

    def test_shared_child_has_several_parents(self):
        graph = build([
            record("app", "0.1.0", "a 1.0", "b 1.0"),
            record("a", "1.0", "c 1.0"),
            record("b", "1.0", "c 1.0"),
            record("c", "1.0"),
        ])

        assert graph.parents(PackageId("c", "1.0")) == (PackageId("a", "1.0"), PackageId("b", "1.0"))
        assert graph.nodes[PackageId("a", "1.0")].dependencies == (PackageId("c", "1.0"),)

    def test_name_only_reference_resolves_when_unambiguous(self):
        graph = build([record("app", "0.1.0", "serde"), record("serde", "1.0.188")])

        assert graph.children(PackageId("app", "0.1.0")) == (PackageId("serde", "1.0.188"),)
        assert graph.missing == ()

    def test_name_only_reference_to_several_versions_is_ambiguous(self):
        graph = build([
            record("app", "0.1.0", "rand"),
            record("rand", "0.7.3"),
            record("rand", "0.8.5"),
        ])

        assert graph.children(PackageId("app", "0.1.0")) == ()
        assert graph.missing == (
            MissingDependency(PackageId("app", "0.1.0"), DependencyRef("rand"), MissingDependency.AMBIGUOUS),
        )

    def test_missing_dependency_is_recorded_and_build_continues(self):
        graph = build([
            record("app", "0.1.0", "a 1.0", "ghost 9.9.9"),
            record("a", "1.0"),
        ])

        assert len(graph.missing) == 1
        missing = graph.missing[0]
        assert missing.dependent == PackageId("app", "0.1.0")
        assert missing.reference == DependencyRef("ghost", "9.9.9")
        assert missing.reason == MissingDependency.NOT_FOUND
        assert graph.children(PackageId("app", "0.1.0")) == (PackageId("a", "1.0"),)

    def test_wrong_version_is_missing(self):
        graph = build([record("app", "0.1.0", "a 2.0"), record("a", "1.0")])

        assert [str(m) for m in graph.missing] == ["app@0.1.0 -> a@2.0 (not-found)"]

    def test_repeated_records_are_merged(self):
        graph = build([
            record("app", "0.1.0", "a 1.0"),
            record("app", "0.1.0", "b 1.0"),
            record("a", "1.0"),
            record("b", "1.0"),
        ])

        assert len(graph) == 3
        assert graph.children(PackageId("app", "0.1.0")) == (PackageId("a", "1.0"), PackageId("b", "1.0"))

    def test_inferred_roots_have_no_incoming_edges(self):
        graph = build([
            record("tool", "1.0", "c 1.0"),
            record("app", "0.1.0", "c 1.0"),
            record("c", "1.0"),
        ])

        assert graph.roots == (PackageId("app", "0.1.0"), PackageId("tool", "1.0"))

    def test_manifest_roots(self):
        graph = build([
            record("app", "0.1.0", "a 1.0", "b 1.0"),
            record("a", "1.0"),
            record("b", "1.0"),
        ], strategy=RootStrategy.MANIFEST, roots=["b", "a@1.0"])

        assert graph.roots == (PackageId("a", "1.0"), PackageId("b", "1.0"))

    def test_manifest_root_by_name_selects_all_versions(self):
        graph = build([record("a", "1.0"), record("a", "2.0")],
                      strategy=RootStrategy.MANIFEST, roots=["a"])

        assert graph.roots == (PackageId("a", "1.0"), PackageId("a", "2.0"))

    def test_manifest_root_without_match_is_skipped(self):
        graph = build([record("a", "1.0")], strategy=RootStrategy.MANIFEST, roots=["a", "nope"])

        assert graph.roots == (PackageId("a", "1.0"),)

    def test_manifest_strategy_without_roots_fails(self):
        with pytest.raises(InputParseError):
            build([record("a", "1.0")], strategy=RootStrategy.MANIFEST)

    def test_project_name_is_carried(self):
        builder = DependencyGraphBuilder()
        builder.set_project_name("R")
        graph = builder.build([record("a", "1.0")])

        assert graph.project_name == "R"

    def test_cycle_does_not_break_building(self):
        graph = build([
            record("app", "0.1.0", "a 1.0"),
            record("a", "1.0", "b 1.0"),
            record("b", "1.0", "a 1.0"),
        ])

        assert graph.roots == (PackageId("app", "0.1.0"),)
        assert graph.parents(PackageId("a", "1.0")) == (PackageId("app", "0.1.0"), PackageId("b", "1.0"))

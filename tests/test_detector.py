"""Tests for duplicate detection and report assembly."""

from dupetrace.analysis import analyze
from dupetrace.detector import find_duplicates
from dupetrace.graph_builder import DependencyGraphBuilder
from dupetrace.models import DependencyRef, PackageId, PackageRecord, RootStrategy


def graph_of(edges, roots=None, project_name=None):
    records = []
    for node, deps in edges.items():
        ref = DependencyRef.parse(node)
        records.append(PackageRecord(name=ref.name, version=ref.version,
                                     dependencies=[DependencyRef.parse(d) for d in deps]))
    builder = DependencyGraphBuilder()
    if roots is not None:
        builder.set_root_strategy(RootStrategy.MANIFEST)
        builder.set_roots([DependencyRef.parse(r) for r in roots])
    builder.set_project_name(project_name)
    return builder.build(records)


EXAMPLE = {
    "R@0.1.0": ["A@1.0", "B@1.0"],
    "A@1.0": ["C@1.0"],
    "B@1.0": ["C@2.0"],
    "C@1.0": [],
    "C@2.0": [],
}


class TestFindDuplicates:
    """Tests for find_duplicates."""

    def test_no_duplicates(self):
        graph = graph_of({"app@1": ["a@1"], "a@1": []})

        assert find_duplicates(graph) == []

    def test_single_duplicate_group(self):
        groups = find_duplicates(graph_of(EXAMPLE))

        assert len(groups) == 1
        assert groups[0].name == "C"
        assert groups[0].versions == ["1.0", "2.0"]
        assert groups[0].latest.version == "2.0"

    def test_versions_sorted_semantically(self):
        graph = graph_of({
            "app@1": ["x@0.10.0", "x@0.9.0", "x@0.2.1"],
            "x@0.10.0": [], "x@0.9.0": [], "x@0.2.1": [],
        })

        assert find_duplicates(graph)[0].versions == ["0.2.1", "0.9.0", "0.10.0"]

    def test_prerelease_is_not_latest(self):
        graph = graph_of({
            "app@1": ["x@2.0.0", "x@1.0.0-1", "x@1.0.0-alpha.beta"],
            "x@2.0.0": [], "x@1.0.0-1": [], "x@1.0.0-alpha.beta": [],
        })

        group = find_duplicates(graph)[0]
        assert group.versions == ["1.0.0-1", "1.0.0-alpha.beta", "2.0.0"]
        assert group.latest.version == "2.0.0"

    def test_groups_sorted_by_name_case_sensitive(self):
        graph = graph_of({
            "app@1": ["b@1", "b@2", "B@1", "B@2", "a@1", "a@2"],
            "b@1": [], "b@2": [], "B@1": [], "B@2": [], "a@1": [], "a@2": [],
        })

        assert [g.name for g in find_duplicates(graph)] == ["B", "a", "b"]


class TestAnalyze:
    """Tests for analyze."""

    def test_example_report(self):
        report = analyze(graph_of(EXAMPLE, roots=["A", "B"], project_name="R"))

        assert report.project_name == "R"
        assert len(report.groups) == 1
        group = report.groups[0]
        assert group.name == "C"
        first, second = group.versions
        assert first.package.version == "1.0"
        assert first.paths == [(PackageId("A", "1.0"), PackageId("C", "1.0"))]
        assert first.dependents == (PackageId("A", "1.0"),)
        assert first.latest is False
        assert second.paths == [(PackageId("B", "1.0"), PackageId("C", "2.0"))]
        assert second.latest is True

    def test_unreachable_version_is_flagged(self):
        graph = graph_of({
            "app@1": ["lib@1"],
            "lib@1": [],
            "stray@1": ["lib@2"],
            "lib@2": [],
        }, roots=["app"])

        report = analyze(graph)

        versions = report.groups[0].versions
        assert versions[0].root_unreachable is False
        assert versions[1].root_unreachable is True
        assert versions[1].paths == []
        assert report.unreachable == [versions[1]]

    def test_missing_dependencies_carried_into_report(self):
        graph = graph_of({"app@1": ["ghost@1"]})

        report = analyze(graph)

        assert report.has_duplicates is False
        assert [str(m) for m in report.missing] == ["app@1 -> ghost@1 (not-found)"]

    def test_all_dependents(self):
        graph = graph_of({
            "app@1": ["a@1", "b@1", "lib@2"],
            "a@1": ["lib@1"],
            "b@1": ["lib@1"],
            "lib@1": [],
            "lib@2": [],
        })

        report = analyze(graph, all_dependents=True)

        old = report.groups[0].versions[0]
        assert old.paths == [
            (PackageId("app", "1"), PackageId("a", "1"), PackageId("lib", "1")),
            (PackageId("app", "1"), PackageId("b", "1"), PackageId("lib", "1")),
        ]

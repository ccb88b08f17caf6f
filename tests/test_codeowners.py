"""Tests for CODEOWNERS parsing and ownership resolution."""

from __future__ import annotations

import pytest

from prattention.exceptions import CyclicGroupError, PatternError, UndefinedGroupError
from prattention.ownership.codeowners import (
    OwnershipTable,
    normalize_pattern,
    parse_codeowners,
    parse_line,
)


class TestParseLine:
    def test_path_with_owners(self):
        pattern, group, members = parse_line('/src/  @"Jane Doe" @john  # owners')
        assert pattern == "/src/"
        assert group == ""
        assert members == ["Jane Doe", "john"]

    def test_group_declaration(self):
        pattern, group, members = parse_line('@@@Backend @"Jane Doe" @@Infra')
        assert pattern == ""
        assert group == "@Backend"
        assert members == ["Jane Doe", "@Infra"]

    @pytest.mark.parametrize("line", ["", "   ", "# Ignore me", "Check(...)"])
    def test_skipped_lines(self, line: str):
        assert parse_line(line) == ("", "", [])

    def test_ignore_line_keeps_bang(self):
        pattern, _, members = parse_line("!/vendor/")
        assert pattern == "!/vendor/"
        assert members == []


class TestNormalizePattern:
    @pytest.mark.parametrize(
        "pattern, expected",
        [
            ("*", "**/*"),
            ("/first/path/*", "/first/path/*"),
            ("docs/", "**/docs/**/*"),
            ("/services/", "/services/**/*"),
            ("**/ignored/tree/**", "**/ignored/tree/**/*"),
            ("ignored/path/{dir1,dir2}/", "**/ignored/path/{dir1,dir2}/**/*"),
        ],
    )
    def test_normalize(self, pattern: str, expected: str):
        assert normalize_pattern(pattern) == expected


class TestParseCodeOwners:
    def test_empty_file(self):
        assert parse_codeowners("") is None
        assert parse_codeowners(None) is None

    def test_comment_only(self):
        table = parse_codeowners("# Ignore me")
        assert table is not None
        assert table.path_list == []
        assert table.groups == {}
        assert table.path_owners == {}
        assert table.users == set()

    def test_group_owns_every_path(self):
        table = parse_codeowners('* @@GroupA\n@@@GroupA @"User 1" @"User 2"')
        assert table.get_owners("any/file.txt") == ["User 1", "User 2"]
        assert table.get_owners("README") == ["User 1", "User 2"]

    def test_flat_group(self):
        table = parse_codeowners('''
            @@@GroupA @"User 1" @"User 2"
            * @@GroupA
        ''')
        assert table.path_list == ["**/*"]
        assert table.groups == {"@GroupA": ["User 1", "User 2"]}
        assert table.path_owners == {"**/*": ["User 1", "User 2"]}
        assert table.users == {"User 1", "User 2"}
        assert table.flattened

    def test_nested_groups(self):
        table = parse_codeowners('''
            @@@GroupA @"User 1" @@GroupB
            @@@GroupB @@GroupC @"User 2" @@GroupD
            @@@GroupC @"User 3" @@GroupD
            @@@GroupD @"User 4" @"User 5"
            * @@GroupA
        ''')
        assert table.groups == {
            "@GroupA": ["User 1", "User 2", "User 3", "User 4", "User 5"],
            "@GroupB": ["User 2", "User 3", "User 4", "User 5"],
            "@GroupC": ["User 3", "User 4", "User 5"],
            "@GroupD": ["User 4", "User 5"],
        }
        assert table.path_owners == {"**/*": ["User 1", "User 2", "User 3", "User 4", "User 5"]}

    def test_unflattened_keeps_group_refs(self):
        table = parse_codeowners('''
            @@@GroupA @"User 1" @@GroupB
            @@@GroupB @"User 2"
            /src/ @@GroupA @"User 3"
        ''', flatten=False)
        assert not table.flattened
        assert table.get_owners("src/main.go") == ["@GroupA", "User 3"]
        assert table.groups["@GroupA"] == ["User 1", "@GroupB"]

    def test_ignore_paths(self):
        table = parse_codeowners('''
            !/ignored/path/file
            !ignored/path/{dir1,dir2}/
            !**/ignored/tree/**
        ''')
        assert table.ignore_list == [
            "/ignored/path/file",
            "**/ignored/path/{dir1,dir2}/**/*",
            "**/ignored/tree/**/*",
        ]
        assert table.path_list == []

    def test_path_order_is_reversed(self):
        table = parse_codeowners('''
            /first/path/*  @"User 1"
            /second/path/* @"User 2"
            /third/path/*  @"User 3"
        ''')
        assert table.path_list == ["/third/path/*", "/second/path/*", "/first/path/*"]
        assert table.users == {"User 1", "User 2", "User 3"}

    def test_duplicate_patterns_accumulate(self):
        table = parse_codeowners('''
            /src/ @alice
            /src/ @bob
        ''')
        assert table.get_owners("src/x.py") == ["alice", "bob"]

    def test_cyclic_groups_rejected(self):
        with pytest.raises(CyclicGroupError) as exc_info:
            parse_codeowners('''
                @@@GroupA @"User 1" @@GroupB
                @@@GroupB @@GroupA
                * @@GroupA
            ''')
        assert set(exc_info.value.cycle) == {"@GroupA", "@GroupB"}

    def test_self_referencing_group_rejected_unflattened(self):
        with pytest.raises(CyclicGroupError):
            parse_codeowners("@@@GroupA @@GroupA\n* @@GroupA", flatten=False)

    def test_undefined_group(self):
        with pytest.raises(UndefinedGroupError) as exc_info:
            parse_codeowners("* @@Nobody")
        assert exc_info.value.group == "@Nobody"

    def test_undefined_group_allowed_unflattened(self):
        table = parse_codeowners("* @@Nobody", flatten=False)
        assert table.get_owners("a.txt") == ["@Nobody"]

    def test_empty_group_expands_to_nobody(self):
        table = parse_codeowners("@@@Empty\n* @@Empty")
        assert table.get_owners("a.txt") == []


class TestGetOwners:
    @pytest.mark.parametrize(
        "path_list, path, expected",
        [
            ([], "nonexistent/file.txt", []),
            (["/aaa/bbb/ccc/ddd.txt"], "aaa/bbb/ccc/ddd.txt", ["user"]),
            (["/*/*/c*/ddd.txt"], "aaa/bbb/ccc/ddd.txt", ["user"]),
            (["/aaa/bbb/ccc/*"], "aaa/bbb/ccc/ddd.txt", ["user"]),
            (["/aaa/bbb/ccc/**/*"], "aaa/bbb/ccc/ddd.txt", ["user"]),
            (["/aaa/**/*"], "aaa/bbb/ccc/ddd.txt", ["user"]),
            (["**/aaa/bbb/ccc/ddd.txt"], "aaa/bbb/ccc/ddd.txt", ["user"]),
            (["**/ddd.txt"], "aaa/bbb/ccc/ddd.txt", ["user"]),
            (["**/ccc/**/*f*.txt"], "aaa/bbb/ccc/ddd/eee/fff.txt", ["user"]),
            (["**/ccc/{ddd,eee}/**/*"], "aaa/bbb/ccc/ddd/eee/fff.txt", ["user"]),
            (["**/ccc/{ddd,eee}/**/*"], "aaa/bbb/ccc/fff/ggg.txt", []),
        ],
    )
    def test_single_pattern(self, path_list: list[str], path: str, expected: list[str]):
        table = OwnershipTable(
            path_list=path_list,
            path_owners={p: ["user"] for p in path_list},
        )
        assert table.get_owners(path) == expected

    def test_first_entry_wins(self):
        table = OwnershipTable(
            path_list=["**/aaa/**/*", "**/bbb.txt"],
            path_owners={"**/aaa/**/*": ["user1"], "**/bbb.txt": ["user2"]},
        )
        assert table.get_owners("aaa/bbb.txt") == ["user1"]

    def test_last_match_in_file_wins(self):
        table = parse_codeowners('''
            **/bbb.txt @user2
            /aaa/ @user1
        ''')
        assert table.get_owners("aaa/bbb.txt") == ["user1"]
        assert table.get_owners("zzz/bbb.txt") == ["user2"]

    @pytest.mark.parametrize(
        "pattern, ignore",
        [
            ("**/aaa/**/*", "**/bbb/**/*"),
            ("**/bbb/*", "/{aaa,ddd}/**/*"),
        ],
    )
    def test_ignore_overrides_match(self, pattern: str, ignore: str):
        table = OwnershipTable(
            path_list=[pattern],
            ignore_list=[ignore],
            path_owners={pattern: ["user"]},
        )
        assert table.get_owners("aaa/bbb/ccc.txt") == []
        assert table.is_ignored("aaa/bbb/ccc.txt")

    def test_returns_a_copy(self):
        table = parse_codeowners("* @alice")
        owners = table.get_owners("x")
        owners.append("mallory")
        assert table.get_owners("x") == ["alice"]

    def test_bad_pattern_raises(self):
        table = parse_codeowners("/src/{a,b @alice")
        with pytest.raises(PatternError):
            table.get_owners("src/a")

    def test_fixture_file(self, tmp_repo):
        table = parse_codeowners((tmp_repo / "CODEOWNERS").read_text())
        assert table.get_owners("main.go") == ["Jane Doe"]
        assert table.get_owners("services/payments/charge.py") == [
            "Jane Doe", "John Roe", "Ops Person",
        ]
        assert table.get_owners("services/README.md") == ["Doc Writer"]
        assert table.get_owners("deploy/prod/app.yaml") == ["Ops Person"]
        assert table.get_owners("services/generated/api.py") == []


class TestGroupExpansion:
    def test_expansion_is_idempotent(self):
        table = parse_codeowners('''
            @@@GroupA @"User 2" @"User 1" @@GroupB @"User 2"
            @@@GroupB @"User 3" @"User 1"
            * @@GroupA
        ''')
        first_paths = dict(table.path_owners)
        first_groups = dict(table.groups)

        table.expand_groups()
        assert table.path_owners == first_paths
        assert table.groups == first_groups
        assert table.groups["@GroupA"] == ["User 1", "User 2", "User 3"]

    def test_owners_per_path_flattened(self):
        table = parse_codeowners("/a/ @alice\n/b/ @bob")
        owners, groups = table.owners_per_path(["a/x", "b/y", "c/z"])
        assert owners == {"a/x": ["alice"], "b/y": ["bob"], "c/z": []}
        assert groups is None

    def test_owners_per_path_raw(self):
        table = parse_codeowners("@@@Team @alice\n/a/ @@Team", flatten=False)
        owners, groups = table.owners_per_path(["a/x"])
        assert owners == {"a/x": ["@Team"]}
        assert groups == {"@Team": ["alice"]}


class TestAllApproved:
    @pytest.mark.parametrize(
        "groups, approvers, owners, expected",
        [
            ({}, ["user1", "user2"], [], True),
            ({}, ["user1", "user2"], ["user1"], True),
            ({"@GroupA": ["user1", "user2"]}, ["user1"], ["@GroupA"], True),
            ({"@GroupA": ["user1", "user2"]}, ["user1", "user2"], ["@GroupA"], True),
            ({}, ["user1", "user2"], ["user3"], False),
            ({"@GroupA": ["user1", "user2"]}, ["user3", "user4"], ["@GroupA"], False),
            ({}, ["user1", "user2", "user3"], ["user1", "user2"], True),
            (
                {"@GroupA": ["user1", "user2"], "@GroupB": ["user2", "user3"]},
                ["user1", "user2"], ["@GroupA", "@GroupB"], True,
            ),
            (
                {"@GroupA": ["user1", "user2"], "@GroupB": ["user3", "user4"]},
                ["user1", "user3"], ["@GroupA", "@GroupB"], True,
            ),
            ({}, ["user1", "user2"], ["user2", "user3"], False),
            (
                {"@GroupA": ["user1", "user2"], "@GroupB": ["user3", "user4"]},
                ["user1", "user2"], ["@GroupA", "@GroupB"], False,
            ),
            (
                {"@GroupA": ["user1", "user2"], "@GroupB": ["user3", "user4"]},
                ["user5", "user6"], ["@GroupA", "@GroupB"], False,
            ),
        ],
    )
    def test_all_approved(self, groups, approvers, owners, expected):
        table = OwnershipTable(groups=groups)
        assert table.all_approved(approvers, owners) is expected

    @pytest.mark.parametrize("approvers", [["user5"], ["user5", "user6"]])
    def test_fallback_short_circuit(self, approvers):
        table = OwnershipTable(groups={
            "@GroupA": ["user1", "user2"],
            "@GroupB": ["user3", "user4"],
            "@FallbackOwners": ["user5", "user6"],
        })
        owners = ["@GroupA", "@GroupB", "user7", "user8"]
        assert table.all_approved(approvers, owners)

    def test_custom_fallback_group(self):
        table = OwnershipTable(
            groups={"@Admins": ["root"]},
            fallback_group="@Admins",
        )
        assert table.all_approved(["root"], ["someone"])
        assert not table.all_approved(["other"], ["someone"])

    def test_nested_group_satisfied_by_one(self):
        table = OwnershipTable(groups={
            "@Outer": ["@Inner"],
            "@Inner": ["user1", "user2"],
        })
        assert table.all_approved(["user2"], ["@Outer"])

    def test_unknown_group(self):
        table = OwnershipTable()
        assert not table.all_approved(["user1"], ["@Missing"])

    def test_any_approval_mode(self):
        table = OwnershipTable()
        assert table.all_approved(["user1"], ["user1", "user2"], need_all=False)
        assert not table.all_approved(["user3"], ["user1", "user2"], need_all=False)


class TestApprovalQueries:
    def test_count_owned_files(self):
        table = parse_codeowners("/a/ @alice\n/b/ @alice @bob\n")
        paths = ["a/1", "b/2", "c/3"]
        assert table.count_owned_files("alice", paths) == 2
        assert table.count_owned_files("bob", paths) == 1
        assert table.count_owned_files("carol", paths) == 0
        assert table.count_owned_files("", paths) == 0

    def test_got_all_required_approvals(self):
        table = parse_codeowners("/a/ @alice\n/b/ @bob\n")
        assert table.got_all_required_approvals(["a/1", "b/2"], ["alice", "bob"])
        assert not table.got_all_required_approvals(["a/1", "b/2"], ["alice"])
        assert not table.got_all_required_approvals([], ["alice", "bob"])

    def test_unowned_paths_need_no_approval(self):
        table = parse_codeowners("/a/ @alice\n")
        assert table.got_all_required_approvals(["z/1"], [])

"""Tests for boundary container and member naming."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from boundary_importer.naming import (
    BoundaryRole,
    classify_member,
    is_boundary_file,
    is_valid_archive_name,
    member_base_name,
)


class TestIsValidArchiveName:
    @pytest.mark.parametrize(
        "name",
        [
            "20210325T1030Z__ENTSOE_BD_001.zip",
            "20210328T0030Z__ENTSOE_BD_006.zip",
            "20210328T0030Z__ENTSOE_BD_999.zip",
        ],
    )
    def test_valid_names(self, name: str) -> None:
        assert is_valid_archive_name(name) is True

    @pytest.mark.parametrize(
        "name",
        [
            "20210328T0030Z__ENTSOE_BD_006.doc",
            "20210328T0030Z__ENTSOE_BD_aaa.zip",
            "20210328T0030Z__ENTSOE_XX_aaa.zip",
            "20210328T0030Z__ENTSOE_XX_006.zip",
            "20210328T0030Z_FOO_ENTSOE_BD_007.zip",
            "20210328T0030Z__ENTSOE_BD_000.zip",
            "20210328T0030Z__ENTSOE_BD_1000.zip",
            "20210328T0030Z__ENTSOE_BD_01.zip",
            "20210328T0030Z__ENTSOE_BD_+01.zip",
            "20210328T0030Z__ENTSOE_BD_001.tar.zip",
            "20210328T0030Z__ENTSOE_BD_001",
            "20210328T0030Z__ENTSOE_BD_001.ZIP",
            "20210328T0030Z__ENTSOE_BD_.zip",
            "",
        ],
    )
    def test_invalid_names(self, name: str) -> None:
        assert is_valid_archive_name(name) is False

    @given(version=st.integers(min_value=1, max_value=999))
    def test_every_three_digit_version_accepted(self, version: int) -> None:
        assert is_valid_archive_name(f"20210325T1030Z__ENTSOE_BD_{version:03d}.zip") is True

    @given(version=st.integers(min_value=1000, max_value=10**6))
    def test_long_versions_rejected(self, version: int) -> None:
        assert is_valid_archive_name(f"20210325T1030Z__ENTSOE_BD_{version}.zip") is False

    @given(
        version=st.text(alphabet="0123456789abcXYZ +-\u0663", min_size=3, max_size=3).filter(
            lambda s: not (s.isascii() and s.isdigit())
        )
    )
    def test_non_numeric_versions_rejected(self, version: str) -> None:
        assert is_valid_archive_name(f"20210325T1030Z__ENTSOE_BD_{version}.zip") is False

    @given(extension=st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=5))
    def test_only_zip_extension_accepted(self, extension: str) -> None:
        expected = extension == "zip"
        assert is_valid_archive_name(f"20210325T1030Z__ENTSOE_BD_001.{extension}") is expected


class TestClassifyMember:
    def test_equipment_boundary(self) -> None:
        assert classify_member("20191106T0930Z__ENTSOE_EQBD_001.xml") is BoundaryRole.EQUIPMENT

    def test_topology_boundary(self) -> None:
        assert classify_member("20191106T0930Z__ENTSOE_TPBD_001.xml") is BoundaryRole.TOPOLOGY

    @pytest.mark.parametrize(
        "name",
        [
            "README.txt",
            "20191106T0930Z__ENTSOE_SSHBD_001.xml",
            "20191106T0930Z_ENTSOE_EQBD_001.xml",
            "20191106T0930Z__ENTSOE_EQBD_001.xml.bak",
            "",
        ],
    )
    def test_ignored(self, name: str) -> None:
        assert classify_member(name) is BoundaryRole.IGNORED
        assert is_boundary_file(name) is False

    def test_dot_before_xml_matches_any_character(self) -> None:
        # The extension dot is a regex wildcard.
        assert classify_member("20191106T0930Z__ENTSOE_EQBD_001_xml") is BoundaryRole.EQUIPMENT

    def test_classification_ignores_directory_prefix_after_base_name(self) -> None:
        name = member_base_name("nested/dir/20191106T0930Z__ENTSOE_TPBD_001.xml")
        assert classify_member(name) is BoundaryRole.TOPOLOGY

    @given(
        prefix=st.text(alphabet="0123456789TZ", max_size=20),
        suffix=st.text(alphabet="0123456789abcXYZ_-.", max_size=10),
    )
    def test_eqbd_token_always_classified_equipment(self, prefix: str, suffix: str) -> None:
        name = f"{prefix}__ENTSOE_EQBD_{suffix}.xml"
        assert classify_member(name) is BoundaryRole.EQUIPMENT


class TestMemberBaseName:
    @pytest.mark.parametrize(
        ("entry", "expected"),
        [
            ("a.xml", "a.xml"),
            ("dir/a.xml", "a.xml"),
            ("dir\\sub\\a.xml", "a.xml"),
            ("dir/", ""),
        ],
    )
    def test_strips_directories(self, entry: str, expected: str) -> None:
        assert member_base_name(entry) == expected

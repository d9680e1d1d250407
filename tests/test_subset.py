"""
Tests for osmium region subsetting.
"""
import subprocess
from unittest.mock import patch

import pytest

from roads.core.config import settings
from roads.core.exceptions import ConfigurationException, OsmiumException
from roads.schemas.geo import BoundingBox
from roads.services.subset import ProcessResult, build_extract_command, subset_file


@pytest.fixture
def bbox():
    return BoundingBox.from_bounds(south=53.5, west=9.75, north=53.75, east=10.25)


class TestValidation:
    """Selector and output validation happens before any process starts."""

    @pytest.mark.parametrize(
        "selectors",
        [
            {},
            {"config_file": "regions.json", "polygon_file": "hamburg.poly"},
            {"bbox": "B", "config_file": "regions.json"},
            {"bbox": "B", "config_file": "regions.json", "polygon_file": "hamburg.poly"},
        ],
    )
    @patch("roads.services.subset.subprocess.run")
    def test_exactly_one_selector(self, mock_run, bbox, selectors):
        if selectors.get("bbox") == "B":
            selectors = {**selectors, "bbox": bbox}

        with pytest.raises(ConfigurationException) as exc_info:
            subset_file("germany.osm.pbf", output_file="out.osm.pbf", **selectors)

        assert exc_info.value.details["selectors_given"] == len(selectors)
        mock_run.assert_not_called()

    @patch("roads.services.subset.subprocess.run")
    def test_output_required(self, mock_run, bbox):
        with pytest.raises(ConfigurationException):
            subset_file("germany.osm.pbf", bbox=bbox)

        mock_run.assert_not_called()


class TestCommand:
    """Tests for option to flag translation."""

    def test_bbox_defaults(self, bbox):
        cmd = build_extract_command("germany.osm.pbf", bbox=bbox, output_file="hh.osm.pbf")

        assert cmd == [
            settings.OSMIUM_BINARY, "extract",
            "-b", "9.75,53.5,10.25,53.75",
            "-s", "complete_ways",
            "-o", "hh.osm.pbf",
            "germany.osm.pbf",
        ]

    def test_polygon_and_config_selectors(self):
        polygon = build_extract_command("in.pbf", polygon_file="hh.poly", output_file="o.pbf")
        config = build_extract_command("in.pbf", config_file="cfg.json", output_directory="out")

        assert polygon[2:4] == ["-p", "hh.poly"]
        assert config[2:4] == ["-c", "cfg.json"]
        assert config[config.index("-d") + 1] == "out"
        assert "-o" not in config

    def test_all_options(self, bbox):
        cmd = build_extract_command(
            "in.osm.pbf",
            bbox=bbox,
            output_file="o.osm",
            output_directory="out",
            strategy="smart",
            strategy_options=["types=multipolygon", "complete-partial-relations=50"],
            set_bounds=True,
            clean=["version", "uid"],
            with_history=True,
            input_format="pbf",
            output_format="xml",
            fsync=True,
            generator="roads",
            output_header="xml_josm_upload=false",
            overwrite=True,
            verbose=True,
            progress=True,
        )

        assert cmd[cmd.index("-s") + 1] == "smart"
        assert cmd.count("-S") == 2
        assert cmd[cmd.index("--clean") + 1] == "version,uid"
        assert cmd[cmd.index("-F") + 1] == "pbf"
        assert cmd[cmd.index("-f") + 1] == "xml"
        assert cmd[cmd.index("--generator") + 1] == "roads"
        assert cmd[cmd.index("--output-header") + 1] == "xml_josm_upload=false"
        for switch in ("--set-bounds", "-H", "--fsync", "-O", "-v", "--progress"):
            assert switch in cmd
        assert "--no-progress" not in cmd
        assert cmd[-1] == "in.osm.pbf"

    def test_single_string_options(self, bbox):
        cmd = build_extract_command(
            "in.pbf", bbox=bbox, output_file="o.pbf",
            strategy_options="types=any", clean="user",
        )

        assert cmd[cmd.index("-S") + 1] == "types=any"
        assert cmd[cmd.index("--clean") + 1] == "user"


class TestSubsetFile:
    """Tests for running osmium."""

    @patch("roads.services.subset.subprocess.run")
    def test_success(self, mock_run, bbox):
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="", stderr="[ 0:00] Done.\n"
        )

        result = subset_file("germany.osm.pbf", bbox=bbox, output_file="hh.osm.pbf")

        assert result.ok
        assert result.args == mock_run.call_args[0][0]
        assert result.check() is result

    @patch("roads.services.subset.subprocess.run")
    def test_failure_status_returned_verbatim(self, mock_run, bbox):
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=1, stdout="", stderr="Open failed for 'hh.osm.pbf': File exists\n"
        )

        result = subset_file("germany.osm.pbf", bbox=bbox, output_file="hh.osm.pbf")

        assert not result.ok
        assert result.returncode == 1
        assert "File exists" in result.stderr

        with pytest.raises(OsmiumException) as exc_info:
            result.check()
        assert exc_info.value.details["returncode"] == 1
        assert "File exists" in exc_info.value.message

    @patch("roads.services.subset.subprocess.run")
    def test_missing_binary(self, mock_run, bbox):
        mock_run.side_effect = FileNotFoundError("osmium")

        with pytest.raises(OsmiumException):
            subset_file("germany.osm.pbf", bbox=bbox, output_file="hh.osm.pbf")


def test_process_result_check_without_stderr():
    result = ProcessResult(args=["osmium", "extract"], returncode=2)

    with pytest.raises(OsmiumException) as exc_info:
        result.check()

    assert "status 2" in exc_info.value.message

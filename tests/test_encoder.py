"""
Report encoders
"""
import json
import xml.etree.ElementTree as ET

import pytest
import yaml

from gradesweep.io.encoder import ENCODERS, ReportFormat, encode
from gradesweep.models import BatchOutcome, EndpointResult, HostResult


@pytest.fixture
def outcome():
    out = BatchOutcome()
    out.add(
        HostResult(
            host="a.example",
            lowest_grade="B",
            highest_grade="A",
            lowest_grade_num=3.0,
            highest_grade_num=4.0,
            endpoints=[
                EndpointResult("192.0.2.1", "A", 4.0),
                EndpointResult("192.0.2.2", "B", 3.0),
            ],
        ),
        False,
    )
    out.add(HostResult(host="busy.example", lowest_grade="T", highest_grade="T"), False)
    return out


class TestReportFormat:

    @pytest.mark.parametrize("value", ["text", "json", "xml", "yaml", "JSON"])
    def test_known(self, value):
        assert ReportFormat.parse(value).value == value.lower()

    @pytest.mark.parametrize("value", ["csv", "", "yml"])
    def test_unknown_rejected(self, value):
        with pytest.raises(ValueError, match="Unsupported format"):
            ReportFormat.parse(value)

    def test_every_format_has_encoder(self):
        assert set(ENCODERS) == set(ReportFormat)


class TestEncode:

    def test_text(self, outcome):
        lines = encode(outcome, ReportFormat.TEXT).splitlines()
        assert lines[0] == "a.example A,B"
        assert lines[1].startswith("busy.example")

    def test_json(self, outcome):
        data = json.loads(encode(outcome, ReportFormat.JSON))

        assert [h["host"] for h in data] == ["a.example", "busy.example"]
        assert data[0] == {
            "host": "a.example",
            "lowestGrade": "B",
            "highestGrade": "A",
            "lowestGradeNum": 3.0,
            "highestGradeNum": 4.0,
            "endpoints": [
                {"ipAddress": "192.0.2.1", "grade": "A", "gradeNum": 4.0},
                {"ipAddress": "192.0.2.2", "grade": "B", "gradeNum": 3.0},
            ],
        }
        assert data[1]["endpoints"] == []

    def test_xml(self, outcome):
        root = ET.fromstring(encode(outcome, ReportFormat.XML))

        assert root.tag == "hosts"
        first, second = root.findall("host")
        assert first.attrib == {
            "name": "a.example",
            "lowest": "B",
            "highest": "A",
            "lowestNum": "3.0",
            "highestNum": "4.0",
        }
        endpoints = first.findall("endpoints/endpoint")
        assert [e.attrib for e in endpoints] == [
            {"ip": "192.0.2.1", "grade": "A", "gradeNum": "4.0"},
            {"ip": "192.0.2.2", "grade": "B", "gradeNum": "3.0"},
        ]
        assert second.get("lowest") == "T"
        assert second.find("endpoints") is None

    def test_yaml(self, outcome):
        text = encode(outcome, ReportFormat.YAML)
        assert text.startswith("---")

        doc = yaml.safe_load(text)
        assert [h["host"] for h in doc["hosts"]] == ["a.example", "busy.example"]
        assert doc["hosts"][0]["endpoints"][1] == {"ipAddress": "192.0.2.2", "grade": "B", "gradeNum": 3.0}

    def test_empty_outcome(self):
        assert encode(BatchOutcome(), ReportFormat.TEXT) == ""
        assert json.loads(encode(BatchOutcome(), ReportFormat.JSON)) == []
        assert yaml.safe_load(encode(BatchOutcome(), ReportFormat.YAML)) == {"hosts": []}

# gradesweep/io/encoder.py

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from enum import Enum

import yaml

from gradesweep.models import BatchOutcome


class ReportFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    XML = "xml"
    YAML = "yaml"

    @classmethod
    def parse(cls, value: str) -> "ReportFormat":
        try:
            return cls(value.lower())
        except ValueError:
            choices = "/".join(f.value for f in cls)
            raise ValueError(f"Unsupported format {value!r} ({choices})") from None


def encode_text(outcome: BatchOutcome) -> str:
    lines = []
    for info in outcome.hosts:
        grades = ",".join(e.grade for e in info.endpoints)
        lines.append(f"{info.host} {grades}")
    return "\n".join(lines) + "\n" if lines else ""


def encode_json(outcome: BatchOutcome) -> str:
    return json.dumps([h.to_dict() for h in outcome.hosts], indent=2) + "\n"


def _num(value: float) -> str:
    return f"{value:.1f}"


def encode_xml(outcome: BatchOutcome) -> str:
    root = ET.Element("hosts")

    for info in outcome.hosts:
        host = ET.SubElement(
            root,
            "host",
            name=info.host,
            lowest=info.lowest_grade,
            highest=info.highest_grade,
            lowestNum=_num(info.lowest_grade_num),
            highestNum=_num(info.highest_grade_num),
        )

        if not info.endpoints:
            continue

        endpoints = ET.SubElement(host, "endpoints")
        for e in info.endpoints:
            ET.SubElement(
                endpoints, "endpoint", ip=e.ip_address, grade=e.grade, gradeNum=_num(e.grade_num)
            )

    tree = ET.ElementTree(root)
    ET.indent(tree, space="  ")
    return ET.tostring(root, encoding="unicode") + "\n"


def encode_yaml(outcome: BatchOutcome) -> str:
    doc = {"hosts": [h.to_dict() for h in outcome.hosts]}
    return yaml.safe_dump(doc, sort_keys=False, explicit_start=True)


ENCODERS = {
    ReportFormat.TEXT: encode_text,
    ReportFormat.JSON: encode_json,
    ReportFormat.XML: encode_xml,
    ReportFormat.YAML: encode_yaml,
}


def encode(outcome: BatchOutcome, fmt: ReportFormat) -> str:
    return ENCODERS[fmt](outcome)

"""Tests for finding synthesis."""

import pytest

from threat_map.core.findings import Finding, Severity, synthesize_finding
from threat_map.models.schemas import GraphNode, Rule


@pytest.fixture
def process():
    return GraphNode(id="p1", type="tm.Process", name="Payments")


class TestSynthesizeFinding:
    def test_copies_template(self, process):
        matched = Rule.model_validate(
            {
                "rule": "Payment tampering",
                "matches": ["isProcess"],
                "generates": {
                    "title": "Tampered payment",
                    "stride": "Tampering",
                    "severity": "High",
                    "description": "Amounts can be changed in transit.",
                    "mitigation": "Sign payment requests.",
                },
            }
        )
        finding = synthesize_finding(matched, process)

        assert finding.title == "Tampered payment"
        assert finding.category == "Tampering"
        assert finding.severity == "High"
        assert finding.description == "Amounts can be changed in transit."
        assert finding.mitigation == "Sign payment requests."
        assert finding.status == "Open"
        assert finding.subject_type == "Payments"
        assert finding.origin == "Payment tampering"
        assert finding.synthetic is True
        assert finding.id.startswith("p1-")

    def test_defaults_for_empty_template(self, process):
        finding = synthesize_finding(Rule(matches=["isProcess"]), process)

        assert finding.title == "Untitled Threat"
        assert finding.category == "Undefined"
        assert finding.severity == "Medium"
        assert finding.description == ""
        assert finding.mitigation == ""
        assert finding.origin == "Threat rule"

    def test_type_used_when_stride_missing(self, process):
        matched = Rule.model_validate({"matches": ["isProcess"], "generates": {"type": "Privacy"}})
        assert synthesize_finding(matched, process).category == "Privacy"

    def test_subject_falls_back_to_cell_type(self):
        flow = GraphNode(id="f1", type="tm.Flow")
        assert synthesize_finding(Rule(matches=["isFlow"]), flow).subject_type == "tm.Flow"

    def test_ids_differ_for_same_rule_and_cell(self, process):
        matched = Rule(matches=["isProcess"])
        ids = {synthesize_finding(matched, process).id for _ in range(100)}
        assert len(ids) == 100


class TestFindingModel:
    def test_hand_written_threat_is_read_leniently(self):
        finding = Finding.model_validate({"title": "Known", "threatId": "T-7", "status": "Mitigated"})
        assert finding.synthetic is False
        assert finding.status == "Mitigated"
        assert finding.model_dump(by_alias=True)["threatId"] == "T-7"

    def test_severity_rank(self):
        ranked = sorted(["Low", "unknown", "critical", "Medium", "High"], key=Severity.rank)
        assert ranked == ["critical", "High", "Medium", "Low", "unknown"]

    def test_hand_written_threat_with_odd_values(self):
        finding = Finding.model_validate({"id": 7, "title": None, "severity": 3, "isGenerated": "yes"})
        assert finding.id == "7"
        assert finding.title == "Untitled Threat"
        assert finding.severity == "3"
        assert finding.synthetic is False

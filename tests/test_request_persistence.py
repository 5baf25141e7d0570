"""Tests for YAML persistence of certificate requests."""

import pytest
import yaml

from certificate_svc.approvals.errors import NotFound, ValidationError
from certificate_svc.approvals.types import CertificateType, RequestStatus
from certificate_svc.requests.loader import load_requests_from_yaml, save_requests_to_yaml
from certificate_svc.requests.registry import RequestRegistry, YamlRequestRegistry
from certificate_svc.requests.service import WorkflowService


class TestYAMLRoundTrip:
    """Requests written through the YAML registry survive a restart."""

    def test_save_and_reload(self, tmp_path):
        yaml_path = tmp_path / "requests.yaml"
        service = WorkflowService(YamlRequestRegistry(yaml_path))

        approved = service.create("m1", "Alice Mukamana", "marriage", "wedding abroad", zone_id="zone-1")
        service.approve(approved.id, "zone-leader", "Grace Uwase", "verified")
        service.approve(approved.id, "pastor", "Pastor Jean")
        service.approve(approved.id, "parish-pastor", "Father Paul", "final")

        rejected = service.create("m2", "Eric Habimana", "confirmation", "sponsor")
        service.reject(rejected.id, "zone-leader", "Grace Uwase", "not registered in zone")

        assert yaml_path.exists()

        # Fresh process
        reloaded = WorkflowService(YamlRequestRegistry(yaml_path))

        r1 = reloaded.get(approved.id)
        assert r1.status == RequestStatus.APPROVED
        assert r1.certificate_type == CertificateType.MARRIAGE
        assert r1.zone_id == "zone-1"
        assert r1.approvals.level1.by == "Grace Uwase"
        assert r1.approvals.level1.comment == "verified"
        assert r1.approvals.level2.comment is None
        assert r1.approvals.level3.comment == "final"

        r2 = reloaded.get(rejected.id)
        assert r2.status == RequestStatus.REJECTED
        assert r2.certificate_type == CertificateType.RECOMMENDATION
        assert r2.rejection_reason == "not registered in zone"
        assert r2.rejected_level == 1
        assert r2.rejected_by == "Grace Uwase"

    def test_status_is_not_written(self, tmp_path):
        """Only the facts are persisted; status is derived on load."""
        yaml_path = tmp_path / "requests.yaml"
        service = WorkflowService(YamlRequestRegistry(yaml_path))
        service.create("m1", "Alice Mukamana", "baptism", "school")

        data = yaml.safe_load(yaml_path.read_text())
        assert "status" not in data["requests"][0]

    def test_ids_continue_after_reload(self, tmp_path):
        yaml_path = tmp_path / "requests.yaml"
        first = WorkflowService(YamlRequestRegistry(yaml_path))
        existing = {first.create("m1", "Alice", "baptism", "school").id for _ in range(3)}

        second = WorkflowService(YamlRequestRegistry(yaml_path))
        new = second.create("m1", "Alice", "membership", "transfer")
        assert new.id not in existing
        assert len(second.list_all()) == 4

    def test_load_missing_file(self, tmp_path):
        """Loading from a non-existent file gives an empty list."""
        assert load_requests_from_yaml(tmp_path / "nonexistent.yaml") == []

    def test_load_empty_file(self, tmp_path):
        yaml_path = tmp_path / "empty.yaml"
        yaml_path.write_text("")
        assert load_requests_from_yaml(yaml_path) == []

    def test_save_creates_parent_dirs(self, tmp_path):
        yaml_path = tmp_path / "nested" / "dir" / "requests.yaml"
        registry = RequestRegistry()
        WorkflowService(registry).create("m1", "Alice", "baptism", "school")

        count = save_requests_to_yaml(yaml_path, registry)
        assert count == 1
        assert yaml_path.exists()
        assert not yaml_path.with_name("requests.yaml.tmp").exists()

    def test_failed_write_leaves_store_unchanged(self, tmp_path, monkeypatch):
        """A put that cannot reach disk is rolled back and raised."""
        yaml_path = tmp_path / "requests.yaml"
        store = YamlRequestRegistry(yaml_path)
        service = WorkflowService(store)
        request = service.create("m1", "Alice", "baptism", "school")

        def broken_save(path, registry):
            raise OSError("disk full")

        monkeypatch.setattr("certificate_svc.requests.registry.save_requests_to_yaml", broken_save)

        with pytest.raises(OSError):
            service.approve(request.id, "zone-leader", "Grace Uwase")
        assert store.get(request.id).status == RequestStatus.PENDING


class TestRegistryClear:
    """Registry clear and counter reset."""

    def test_clear_resets_everything(self):
        registry = RequestRegistry()
        service = WorkflowService(registry)
        service.create("m1", "Alice", "baptism", "school")
        service.create("m2", "Eric", "baptism", "school")
        assert len(registry.all_requests()) == 2

        registry.clear()
        assert len(registry.all_requests()) == 0
        assert registry.next_id() == "CERT-000001"


def _write_requests(path, *records):
    path.write_text(yaml.safe_dump({"requests": list(records)}, sort_keys=False))


def _record(request_id="CERT-000001", **overrides):
    data = {
        "id": request_id,
        "member_id": "m1",
        "member_name": "Alice Mukamana",
        "certificate_type": "baptism",
        "purpose": "school",
        "request_date": "2025-06-01T10:00:00+00:00",
    }
    data.update(overrides)
    return data


SIGNED = {"by": "Grace Uwase", "done_at": "2025-06-02T09:00:00+00:00"}


class TestInvalidFiles:
    """Files that break the ledger's rules are refused, not half-loaded."""

    @pytest.mark.parametrize("record", [
        _record(certificate_type="ordination"),
        _record(approvals={"level2": SIGNED}),
        _record(approvals={"level1": SIGNED, "level3": SIGNED}),
        _record(rejection_reason="missing records"),
        _record(rejection_reason="missing records", rejected_by="Pastor Jean", rejected_level=1,
                approvals={"level1": SIGNED}),
        _record(rejected_level=2, rejected_by="Pastor Jean"),
        _record(approvals={"level1": {"done_at": "2025-06-02T09:00:00+00:00"}}),
        _record(id=""),
    ])
    def test_inconsistent_record_raises(self, tmp_path, record):
        yaml_path = tmp_path / "requests.yaml"
        _write_requests(yaml_path, record)

        with pytest.raises(ValidationError):
            load_requests_from_yaml(yaml_path)

    def test_gapped_slots_name_the_request(self, tmp_path):
        yaml_path = tmp_path / "requests.yaml"
        _write_requests(yaml_path, _record("CERT-000007", approvals={"level2": SIGNED}))

        with pytest.raises(ValidationError, match="CERT-000007"):
            load_requests_from_yaml(yaml_path)

    def test_consistent_rejection_loads(self, tmp_path):
        yaml_path = tmp_path / "requests.yaml"
        _write_requests(yaml_path, _record(
            approvals={"level1": SIGNED},
            rejection_reason="insufficient documentation",
            rejected_by="Pastor Jean",
            rejected_at="2025-06-03T09:00:00+00:00",
            rejected_level=2,
        ))

        [request] = load_requests_from_yaml(yaml_path)
        assert request.status == RequestStatus.REJECTED

    def test_duplicate_ids(self, tmp_path):
        yaml_path = tmp_path / "requests.yaml"
        _write_requests(yaml_path, _record(), _record(purpose="wedding"))

        with pytest.raises(ValidationError, match="duplicate"):
            load_requests_from_yaml(yaml_path)

    def test_not_yaml(self, tmp_path):
        yaml_path = tmp_path / "requests.yaml"
        yaml_path.write_text("requests: [unclosed\n")

        with pytest.raises(ValidationError):
            load_requests_from_yaml(yaml_path)

    def test_registry_refuses_invalid_file_at_startup(self, tmp_path):
        yaml_path = tmp_path / "requests.yaml"
        _write_requests(yaml_path, _record(approvals={"level3": SIGNED}))

        with pytest.raises(ValidationError):
            YamlRequestRegistry(yaml_path)


class TestFailedReload:
    """A reload that cannot parse the file leaves the store as it was."""

    def test_failed_reload_keeps_requests_and_file(self, tmp_path):
        yaml_path = tmp_path / "requests.yaml"
        store = YamlRequestRegistry(yaml_path)
        service = WorkflowService(store)
        ids = [service.create("m1", "Alice", "baptism", "school").id for _ in range(3)]

        with open(yaml_path, "a", encoding="utf-8") as f:
            f.write(yaml.safe_dump([_record("CERT-000099", certificate_type="ordination")]))

        with pytest.raises(ValidationError):
            store.reload()
        assert sorted(r.id for r in store.all_requests()) == ids

        # Next write keeps every valid request on disk
        service.create("m2", "Eric", "membership", "transfer")
        assert len(load_requests_from_yaml(yaml_path)) == 4

    def test_gapped_record_never_becomes_actionable(self, tmp_path):
        """A level-2-only record cannot slip into the zone leader queue."""
        yaml_path = tmp_path / "requests.yaml"
        store = YamlRequestRegistry(yaml_path)
        service = WorkflowService(store)
        service.create("m1", "Alice", "baptism", "school")

        data = yaml.safe_load(yaml_path.read_text())
        data["requests"].append(_record("CERT-000002", approvals={"level2": SIGNED}))
        yaml_path.write_text(yaml.safe_dump(data, sort_keys=False))

        with pytest.raises(ValidationError):
            store.reload()
        with pytest.raises(NotFound):
            service.approve("CERT-000002", "zone-leader", "Grace Uwase")

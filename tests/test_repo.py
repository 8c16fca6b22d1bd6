"""Tests for the local SQLite part catalog."""

import sqlite3

import pytest

from parts_client.db.repo import Repo
from parts_logic.models.errors import AllocationConflict, CatalogUnavailable
from parts_logic.models.types import PartStatus, PartType


def _payload(name, type="U shape", **kwargs):
    payload = {"name": name, "type": type, "dimensions": {"length": "10"}, "project_id": "p1"}
    payload.update(kwargs)
    return payload


class TestRepo:
    def test_insert_and_get(self, repo):
        part = repo.insert_part(_payload("U1", pictures=["https://img/1.jpg"], designer="Kim"))
        assert part.id
        assert part.name == "U1"
        assert part.type is PartType.U_SHAPE
        assert part.status is PartStatus.MEASURED
        assert part.dimensions == {"length": "10"}
        assert part.pictures == ["https://img/1.jpg"]
        assert part.created_at is not None

        fetched = repo.get_part(part.id)
        assert fetched == part

    def test_get_missing_part(self, repo):
        assert repo.get_part("nope") is None

    def test_duplicate_name_is_a_conflict(self, repo):
        repo.insert_part(_payload("U1", project_id="p1"))
        # Names are unique across projects, not per project.
        with pytest.raises(AllocationConflict) as exc:
            repo.insert_part(_payload("U1", project_id="p2"))
        assert exc.value.name == "U1"

    def test_name_exists(self, repo):
        assert not repo.name_exists("U1")
        repo.insert_part(_payload("U1"))
        assert repo.name_exists("U1")

    def test_query_by_type(self, repo):
        repo.insert_part(_payload("U1"))
        repo.insert_part(_payload("K1", type="Knob"))
        assert [p.name for p in repo.query_parts_by_type(PartType.KNOB)] == ["K1"]
        assert len(repo.query_all_parts()) == 2

    def test_query_part_names_by_prefix(self, repo):
        for name in ("U1", "U12", "K5", "U-legacy-7"):
            repo.insert_part(_payload(name))
        assert sorted(repo.query_part_names("U")) == ["U-legacy-7", "U1", "U12"]

    def test_sub_parts(self, repo):
        parent = repo.insert_part(_payload("U8"))
        repo.insert_part(_payload("U8a", parent_part_id=parent.id))
        repo.insert_part(_payload("U8b", parent_part_id=parent.id))
        assert repo.count_sub_parts(parent.id) == 2
        assert [p.name for p in repo.query_sub_parts(parent.id)] == ["U8a", "U8b"]
        assert repo.get_part(repo.query_sub_parts(parent.id)[0].id).is_sub_part

    def test_unknown_parent_is_rejected(self, repo):
        with pytest.raises(ValueError):
            repo.insert_part(_payload("U8a", parent_part_id="missing"))

    def test_update_mutable_fields(self, repo):
        part = repo.insert_part(_payload("U1"))
        updated = repo.update_part(part.id, {"status": "printed", "dimensions": {"length": "12"}, "designer": "Ana"})
        assert updated.name == "U1"
        assert updated.status is PartStatus.PRINTED
        assert updated.dimensions == {"length": "12"}
        assert updated.designer == "Ana"

    def test_name_is_immutable(self, repo):
        part = repo.insert_part(_payload("U1"))
        with pytest.raises(ValueError):
            repo.update_part(part.id, {"name": "U2"})
        with pytest.raises(ValueError):
            repo.update_part(part.id, {"colour": "red"})

    def test_delete_cascades_to_sub_parts(self, repo):
        parent = repo.insert_part(_payload("U8"))
        child = repo.insert_part(_payload("U8a", parent_part_id=parent.id))
        repo.insert_part(_payload("U8aa", parent_part_id=child.id))
        other = repo.insert_part(_payload("U9"))

        assert repo.delete_part(parent.id)
        assert [p.name for p in repo.query_all_parts()] == [other.name]
        assert not repo.delete_part(parent.id)

    def test_next_sequence_is_monotonic(self, repo):
        assert repo.next_sequence("U") == 1
        assert repo.next_sequence("U") == 2
        assert repo.next_sequence("K") == 1

    def test_next_sequence_seeds_from_existing_names(self, repo):
        for name in ("U1", "U3", "U7", "U-legacy-40"):
            repo.insert_part(_payload(name))
        assert repo.next_sequence("U") == 8

    def test_next_sequence_skips_explicit_names(self, repo):
        assert repo.next_sequence("U") == 1
        repo.insert_part(_payload("U10"))
        assert repo.next_sequence("U") == 11

    def test_next_sequence_does_not_reuse_after_delete(self, repo):
        part = repo.insert_part(_payload("U1"))
        assert repo.next_sequence("U") == 2
        repo.delete_part(part.id)
        assert repo.next_sequence("U") == 3

    def test_broken_database_is_unavailable(self, tmp_path):
        db_path = tmp_path / "parts.db"
        store = Repo(str(db_path))
        conn = sqlite3.connect(str(db_path))
        conn.execute("DROP TABLE parts")
        conn.commit()
        conn.close()
        with pytest.raises(CatalogUnavailable):
            store.query_all_parts()
        with pytest.raises(CatalogUnavailable):
            store.next_sequence("U")

    def test_unreadable_insert_is_unavailable(self, tmp_path, monkeypatch):
        store = Repo(str(tmp_path / "parts.db"))
        monkeypatch.setattr(store, "get_part", lambda part_id: None)
        with pytest.raises(CatalogUnavailable):
            store.insert_part(_payload("U1"))

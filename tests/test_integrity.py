"""Tests for taskmgr.storage.integrity: sequence numbers, IDs and reference checks."""

import pytest

from taskmgr.domain.models import EntityType
from taskmgr.lib.errors import InvalidArgumentError, NotFoundError
from taskmgr.storage.composite import RepositoryComposite
from taskmgr.storage.database import Database
from taskmgr.storage.integrity import IntegrityAuthority


class TestNextSequenceNumber:
    """Tests for next_sequence_number()."""

    def test_strictly_increasing(self, store):
        numbers = [store.get_next_sequence_number("task") for _ in range(10)]
        assert numbers == list(range(1, 11))

    def test_entity_types_independent(self, store):
        assert store.get_next_sequence_number("task") == 1
        assert store.get_next_sequence_number("task") == 2
        assert store.get_next_sequence_number("track") == 1
        assert store.get_next_sequence_number("adr") == 1

    def test_projects_independent(self, store):
        assert store.get_next_sequence_number("task", "AA") == 1
        assert store.get_next_sequence_number("task", "AA") == 2
        assert store.get_next_sequence_number("task", "BB") == 1

    def test_iteration_alias(self, store):
        assert store.get_next_sequence_number("iteration") == 1
        assert store.get_next_sequence_number(EntityType.ITERATION) == 2

    def test_unknown_entity_type(self, store):
        with pytest.raises(InvalidArgumentError, match="invalid entity type: epic"):
            store.get_next_sequence_number("epic")

    def test_survives_restart(self, db_path):
        first = RepositoryComposite(db_path, project_code="TM")
        issued = [first.get_next_sequence_number("task") for _ in range(3)]
        first.close()

        second = RepositoryComposite(db_path, project_code="TM")
        assert second.get_next_sequence_number("task") == issued[-1] + 1
        second.close()

    def test_rolled_back_number_is_not_issued(self, store):
        """A number drawn inside a failed transaction is never handed out."""
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.get_next_sequence_number("task")
                raise RuntimeError("insert failed")
        assert store.get_next_sequence_number("task") == 1

    def test_seeded_from_existing_ids(self, store, track):
        """A missing counter row starts from the highest stored ID."""
        store.create_task(track.id, "one")
        store.create_task(track.id, "two")
        store.db.execute("DELETE FROM entity_sequences WHERE entity_type = 'task'")

        assert store.get_next_sequence_number("task") == 3

    def test_seed_ignores_other_project_codes(self, store, track):
        store.create_task(track.id, "one")
        assert store.get_next_sequence_number("task", "ZZ") == 1


class TestIds:
    """Tests for make_id() and next_id()."""

    def test_make_id(self, store):
        assert store.integrity.make_id("track", 7) == "TM-track-7"
        assert store.integrity.make_id("iteration", 2) == "TM-iter-2"

    def test_next_id(self, store):
        assert store.integrity.next_id(EntityType.AC) == "TM-ac-1"
        assert store.integrity.next_id(EntityType.AC) == "TM-ac-2"

    def test_created_entities_use_project_code(self, tmp_path):
        with RepositoryComposite(tmp_path / "dw.db", project_code="DW") as store:
            roadmap = store.create_roadmap("v", "s")
            track = store.create_track(roadmap.id, "Storage")
            assert track.id == "DW-track-1"


class TestProjectCode:
    """Tests for project code resolution."""

    def test_fallback_when_unset(self, tmp_path):
        db = Database(tmp_path / "x.db")
        assert IntegrityAuthority(db).project_code == "TM"
        db.close()

    def test_stored_code_used_without_explicit(self, db_path):
        RepositoryComposite(db_path, project_code="DW").close()
        with RepositoryComposite(db_path) as store:
            assert store.project_code == "DW"

    def test_set_project_code(self, store):
        store.aggregate.set_project_code("NEW")
        assert store.aggregate.get_project_code() == "NEW"
        assert store.aggregate.get_metadata("project_code") == "NEW"

    def test_invalid_project_code(self, store):
        with pytest.raises(InvalidArgumentError, match="invalid project code"):
            store.aggregate.set_project_code("lower")

    def test_invalid_explicit_code(self, tmp_path):
        db = Database(tmp_path / "x.db")
        with pytest.raises(InvalidArgumentError):
            IntegrityAuthority(db, "bad-code")
        db.close()


class TestReferenceChecks:
    """Tests for require_* and relationship rules."""

    def test_require_track_missing(self, store):
        with pytest.raises(NotFoundError, match="track TM-track-9 not found"):
            store.integrity.require_track("TM-track-9", "task TM-task-1")

    def test_require_names_referrer(self, store):
        with pytest.raises(NotFoundError, match=r"referenced by task TM-task-1"):
            store.integrity.require_track("TM-track-9", "task TM-task-1")

    def test_require_existing(self, store, track, task):
        store.integrity.require_track(track.id)
        store.integrity.require_task(task.id)

    def test_document_xor(self, store, track):
        store.create_iteration("one", number=1)
        with pytest.raises(InvalidArgumentError, match="both track"):
            store.integrity.check_document_attachment(track.id, 1)

    def test_document_xor_checked_before_existence(self, store):
        """Both set is InvalidArgument even when neither target exists."""
        with pytest.raises(InvalidArgumentError):
            store.integrity.check_document_attachment("TM-track-404", 404)

    def test_document_unattached_ok(self, store):
        store.integrity.check_document_attachment(None, None)

    def test_supersession_requires_status(self, store):
        with pytest.raises(InvalidArgumentError, match="expected superseded"):
            store.integrity.check_adr_supersession("accepted", "TM-adr-2", "TM-adr-1")

    def test_supersession_target_must_exist(self, store):
        with pytest.raises(NotFoundError, match="ADR TM-adr-2 not found"):
            store.integrity.check_adr_supersession("superseded", "TM-adr-2", "TM-adr-1")

    def test_supersession_not_self(self, store):
        with pytest.raises(InvalidArgumentError, match="cannot supersede itself"):
            store.integrity.check_adr_supersession("superseded", "TM-adr-1", "TM-adr-1")

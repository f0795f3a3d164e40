"""
Tests for CSV import jobs run through the bulk engine.
"""
import os
import threading

import pytest
from argon2 import PasswordHasher
pytest.importorskip("pytest_asyncio")

from skillconnect.db.repositories import audits as audit_repo
from skillconnect.db.repositories import users as users_repo
from skillconnect.bulk import jobs


def _upload(text, name="users.csv"):
    return {"fileName": name, "content": text.encode("utf-8"), "contentType": "text/csv"}


async def _run_import(engine, text, initiator):
    op_id = await engine.submit("import", _upload(text), initiator=initiator)
    await engine.wait(op_id)
    return engine.get_status(op_id)


@pytest.mark.asyncio
async def test_import_mixed_rows_records_line_numbers(bulk_engine, admin_user, make_user, db_session):
    make_user("dup@example.com")
    csv_text = (
        "firstName,lastName,email\n"
        "Dup,User,DUP@example.com\n"
        "Miss,,miss@example.com\n"
        "Val,Id,valid@example.com\n"
    )

    op = await _run_import(bulk_engine, csv_text, admin_user.id)

    assert op.status == "completed"
    assert op.progress.total == 3
    assert op.progress.successful == 1
    assert op.progress.failed == 2
    assert op.progress.processed == op.progress.successful + op.progress.failed
    failures = {f.line_number: f.error for f in op.results.failed_items}
    assert failures == {
        2: "User already exists",
        3: "Missing required fields (firstName, lastName, email)",
    }
    assert [u["email"] for u in op.results.successful_items] == ["valid@example.com"]
    assert op.results.summary == {"totalProcessed": 3, "successful": 1, "failed": 2}
    assert op.start_time is not None and op.end_time is not None
    assert users_repo.get_user_by_email(db_session, "miss@example.com") is None


@pytest.mark.asyncio
async def test_imported_user_defaults(bulk_engine, admin_user, bulk_config, db_session):
    csv_text = (
        "firstName,lastName,email,phone,password,roles\n"
        "Ana,Lee,Ana.Lee@Example.com,555-0101,,\n"
        "Bo,Ray,bo@example.com,,s3cretpass,\"mentor, mentee\"\n"
    )

    op = await _run_import(bulk_engine, csv_text, admin_user.id)
    assert op.progress.successful == 2

    db_session.expire_all()
    ana = users_repo.get_user_by_email(db_session, "ana.lee@example.com")
    assert ana.account_status == "active"
    assert ana.email_verified is True
    assert ana.roles == ["mentee"]
    assert ana.phone == "555-0101"
    assert ana.registration_source == "bulk_import"
    assert PasswordHasher().verify(ana.password_hash, bulk_config.import_default_password)

    bo = users_repo.get_user_by_email(db_session, "bo@example.com")
    assert bo.roles == ["mentor", "mentee"]
    assert bo.current_role == "mentor"
    assert PasswordHasher().verify(bo.password_hash, "s3cretpass")

    for item in op.results.successful_items:
        assert "password" not in item and "password_hash" not in item


@pytest.mark.asyncio
async def test_duplicate_within_same_file_fails_second_row(bulk_engine, admin_user):
    csv_text = (
        "firstName,lastName,email,password\n"
        "One,A,same@example.com,firstpass\n"
        "Two,B,SAME@example.com,secondpass\n"
    )

    op = await _run_import(bulk_engine, csv_text, admin_user.id)

    assert op.progress.successful == 1
    [failure] = op.results.failed_items
    assert failure.error == "User already exists"
    assert failure.line_number == 3
    assert failure.item["password"] == "***"


@pytest.mark.asyncio
async def test_invalid_rows_fail_individually(bulk_engine, admin_user):
    csv_text = (
        "firstName,lastName,email,password,roles\n"
        "Bad,Role,role@example.com,,superuser\n"
        "Bad,Mail,not-an-email,,\n"
        "Short,Pass,short@example.com,abc,\n"
        "Good,Row,good@example.com,,mentor\n"
    )

    op = await _run_import(bulk_engine, csv_text, admin_user.id)

    assert op.status == "completed"
    assert op.progress.successful == 1
    errors = [f.error for f in op.results.failed_items]
    assert errors[0] == "Invalid roles: superuser"
    assert errors[1].startswith("Invalid email address")
    assert errors[2] == "Password must be at least 6 characters"


@pytest.mark.asyncio
async def test_unreadable_import_file_fails_job(bulk_engine, admin_user, db_session):
    op_id = await bulk_engine.submit("import", _upload("firstName,lastName,email\nA,B,a@b.io\n"), initiator=admin_user.id)
    # The job has not started yet; remove its input underneath it
    os.remove(bulk_engine.get_status(op_id).files.input)

    await bulk_engine.wait(op_id)
    op = bulk_engine.get_status(op_id)

    assert op.status == "failed"
    assert op.end_time is not None
    assert op.results.summary["error"].startswith("Unable to read import file")
    assert op.progress.processed == 0

    actions = [log.action_type for log in audit_repo.get_audit_logs(db_session, target_id=op_id)]
    assert sorted(actions) == ["bulk_operation_complete", "bulk_operation_start"]
    complete = audit_repo.get_audit_logs(db_session, target_id=op_id, action_type="bulk_operation_complete")[0]
    assert complete.status == "failure"


@pytest.mark.asyncio
async def test_import_audits_each_created_user(bulk_engine, admin_user, db_session):
    op = await _run_import(bulk_engine, "firstName,lastName,email\nA,B,audit@example.com\n", admin_user.id)

    created = audit_repo.get_audit_logs(db_session, action_type="user_created", actor_user_id=admin_user.id)
    assert len(created) == 1
    assert created[0].metadata_json == {"source": "bulk_import", "operationId": op.operation_id}
    assert created[0].target_id == op.results.successful_items[0]["_id"]


@pytest.mark.asyncio
async def test_upload_is_stored_before_the_job_runs(bulk_engine, admin_user, bulk_config):
    op_id = await bulk_engine.submit("import", _upload("firstName,lastName,email\n", name="my list.csv"), initiator=admin_user.id)
    op = bulk_engine.get_status(op_id)

    assert op.status == "pending"
    assert op.parameters == {"fileName": "my list.csv", "size": 25}
    assert op.files.input.startswith(bulk_config.upload_dir)
    assert op.files.input.endswith("-my_list.csv")
    assert os.path.exists(op.files.input)

    await bulk_engine.wait(op_id)
    op = bulk_engine.get_status(op_id)
    assert op.status == "completed"
    assert op.progress.total == 0


@pytest.mark.asyncio
async def test_password_hashing_runs_off_the_event_loop(bulk_engine, admin_user, monkeypatch):
    loop_thread = threading.get_ident()
    hashing_threads = []
    real_hash = jobs.hash_password

    def _recording_hash(password):
        hashing_threads.append(threading.get_ident())
        return real_hash(password)

    monkeypatch.setattr(jobs, "hash_password", _recording_hash)
    op = await _run_import(bulk_engine, "firstName,lastName,email\nTia,Tan,tia@example.com\n", admin_user.id)

    assert op.progress.successful == 1
    assert len(hashing_threads) == 1
    assert hashing_threads[0] != loop_thread

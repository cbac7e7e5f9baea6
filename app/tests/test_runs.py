"""
Tests for run upload, bulk sync, listing and soft deletion.
"""
import uuid
from conftest import iso, make_run
from app.models.run import Run
from app.schemas.run import RunUpload
from app.services.identity_service import IdentityStore
from app.services.run_service import RunService


def test_upload_run_then_reupload_overwrites(client, register, db):
    """Re-uploading a clientId updates the one stored row (last write wins)."""
    _, headers = register()
    client_id = str(uuid.uuid4())

    first = client.post("/v1/runs", headers=headers, json=make_run(client_id, distance=5.2))
    assert first.status_code == 201
    assert first.json()["created"] is True
    assert first.json()["synced"] is True

    second = client.post("/v1/runs", headers=headers, json=make_run(client_id, distance=6.0, points=150))
    assert second.status_code == 200
    assert second.json()["created"] is False
    assert second.json()["runId"] == first.json()["runId"]

    rows = db.query(Run).filter(Run.client_id == client_id).all()
    assert len(rows) == 1
    assert rows[0].distance == 6.0
    assert rows[0].points == 150


def test_upload_run_validation(client, register):
    _, headers = register()

    missing_id = make_run()
    del missing_id["clientId"]
    assert client.post("/v1/runs", headers=headers, json=missing_id).status_code == 400

    negative = make_run(distance=-1)
    assert client.post("/v1/runs", headers=headers, json=negative).status_code == 400

    not_uuid = make_run(client_id="not-a-uuid")
    assert client.post("/v1/runs", headers=headers, json=not_uuid).status_code == 400


def test_upsert_is_scoped_per_user(db):
    store = IdentityStore(db)
    alice = store.create_user(email="alice@example.com", display_name="Alice")
    bob = store.create_user(email="bob@example.com", display_name="Bob")
    db.commit()

    client_id = str(uuid.uuid4())
    runs = RunService(db)
    assert runs.upsert_run(alice.id, RunUpload.model_validate(make_run(client_id))).created is True
    assert runs.upsert_run(bob.id, RunUpload.model_validate(make_run(client_id))).created is True
    assert db.query(Run).filter(Run.client_id == client_id).count() == 2


def test_bulk_upload_isolates_bad_items(client, register):
    _, headers = register()
    existing_id = str(uuid.uuid4())
    client.post("/v1/runs", headers=headers, json=make_run(existing_id))

    bad = make_run()
    del bad["clientId"]
    batch = [make_run(), bad, make_run(existing_id, points=999), make_run(maxSpeed=-3)]

    response = client.post("/v1/runs/bulk", headers=headers, json={"runs": batch})
    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["status"] for r in results] == ["created", "error", "updated", "error"]
    assert results[0]["clientId"] == batch[0]["clientId"]
    assert "clientId" in results[1]["error"]
    assert results[2]["serverId"]
    assert results[3]["clientId"] == batch[3]["clientId"]

    listed = client.get("/v1/runs", headers=headers).json()
    assert listed["total"] == 2


def test_bulk_upload_limits(client, register):
    _, headers = register()

    too_many = [make_run() for _ in range(51)]
    response = client.post("/v1/runs/bulk", headers=headers, json={"runs": too_many})
    assert response.status_code == 400
    assert response.json()["message"] == "Maximum 50 runs per batch"

    empty = client.post("/v1/runs/bulk", headers=headers, json={"runs": []})
    assert empty.status_code == 400

    fifty = [make_run() for _ in range(50)]
    response = client.post("/v1/runs/bulk", headers=headers, json={"runs": fifty})
    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["clientId"] for r in results] == [r["clientId"] for r in fifty]


def test_list_runs_pagination_and_filters(client, register):
    _, headers = register()
    for minutes_ago, resort in [(50, "Mammoth"), (40, "Tahoe"), (30, "Mammoth"), (20, "Mammoth")]:
        client.post("/v1/runs", headers=headers, json=make_run(startTime=iso(minutes_ago), resortName=resort))

    page_one = client.get("/v1/runs", headers=headers, params={"limit": 2}).json()
    assert page_one["total"] == 4
    assert page_one["pages"] == 2
    assert len(page_one["runs"]) == 2
    assert page_one["runs"][0]["startTime"] >= page_one["runs"][1]["startTime"]
    assert "routeData" not in page_one["runs"][0]

    page_two = client.get("/v1/runs", headers=headers, params={"limit": 2, "page": 2}).json()
    assert len(page_two["runs"]) == 2
    assert {r["id"] for r in page_one["runs"]}.isdisjoint({r["id"] for r in page_two["runs"]})

    mammoth = client.get("/v1/runs", headers=headers, params={"resort": "Mammoth"}).json()
    assert mammoth["total"] == 3

    recent = client.get("/v1/runs", headers=headers, params={"since": iso(35)}).json()
    assert recent["total"] == 2

    assert client.get("/v1/runs", headers=headers, params={"limit": 101}).status_code == 400


def test_get_run_includes_route_data(client, register):
    _, headers = register()
    run_id = client.post("/v1/runs", headers=headers, json=make_run()).json()["runId"]

    response = client.get(f"/v1/runs/{run_id}", headers=headers)
    assert response.status_code == 200
    assert response.json()["run"]["routeData"] == {"points": [[37.63, -119.03], [37.62, -119.02]]}


def test_get_run_of_another_user_is_not_found(client, register):
    _, alice = register()
    _, bob = register(email="bob@example.com")
    run_id = client.post("/v1/runs", headers=alice, json=make_run()).json()["runId"]

    response = client.get(f"/v1/runs/{run_id}", headers=bob)
    assert response.status_code == 404
    assert response.json()["message"] == "Run not found"


def test_soft_delete_hides_run(client, register, db):
    payload, headers = register()
    run_id = client.post("/v1/runs", headers=headers, json=make_run()).json()["runId"]

    assert client.delete(f"/v1/runs/{run_id}", headers=headers).status_code == 200
    assert client.get(f"/v1/runs/{run_id}", headers=headers).status_code == 404
    assert client.get("/v1/runs", headers=headers).json()["total"] == 0
    assert client.delete(f"/v1/runs/{run_id}", headers=headers).status_code == 404

    audited = RunService(db).get_run_for_audit(payload["user"]["id"], run_id)
    assert audited is not None
    assert audited.is_deleted is True
    assert audited.deleted_at is not None


def test_reupload_does_not_undelete(client, register):
    _, headers = register()
    client_id = str(uuid.uuid4())
    run_id = client.post("/v1/runs", headers=headers, json=make_run(client_id)).json()["runId"]
    client.delete(f"/v1/runs/{run_id}", headers=headers)

    again = client.post("/v1/runs", headers=headers, json=make_run(client_id))
    assert again.json()["runId"] == run_id
    assert client.get(f"/v1/runs/{run_id}", headers=headers).status_code == 404


def test_sync_status(client, register):
    _, headers = register()
    first = client.post("/v1/runs", headers=headers, json=make_run()).json()

    everything = client.get("/v1/runs/sync/status", headers=headers).json()
    assert [r["id"] for r in everything["updatedRuns"]] == [first["runId"]]
    assert everything["updatedRuns"][0]["clientId"] == first["clientId"]
    assert "serverTime" in everything

    later = client.get("/v1/runs/sync/status", headers=headers, params={"since": everything["serverTime"]}).json()
    assert later["updatedRuns"] == []


def test_sync_status_reports_deletions(client, register):
    _, headers = register()
    kept = client.post("/v1/runs", headers=headers, json=make_run()).json()
    doomed = client.post("/v1/runs", headers=headers, json=make_run()).json()
    server_time = client.get("/v1/runs/sync/status", headers=headers).json()["serverTime"]

    client.delete(f"/v1/runs/{doomed['runId']}", headers=headers)

    changed = client.get("/v1/runs/sync/status", headers=headers, params={"since": server_time}).json()
    assert [r["id"] for r in changed["updatedRuns"]] == [doomed["runId"]]
    assert changed["updatedRuns"][0]["clientId"] == doomed["clientId"]
    assert changed["updatedRuns"][0]["isDeleted"] is True
    assert changed["updatedRuns"][0]["deletedAt"] is not None

    everything = client.get("/v1/runs/sync/status", headers=headers).json()["updatedRuns"]
    flags = {r["id"]: r["isDeleted"] for r in everything}
    assert flags == {kept["runId"]: False, doomed["runId"]: True}

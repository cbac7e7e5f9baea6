"""
Tests for profile endpoints.
"""
from conftest import make_run


def test_get_profile_with_stats(client, register):
    _, headers = register(display_name="Alice")
    client.post("/v1/runs", headers=headers, json=make_run(points=100, resortName="Mammoth"))
    client.post("/v1/runs", headers=headers, json=make_run(points=20, resortName="Tahoe", maxSpeed=80.0))

    response = client.get("/v1/profile", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["profile"]["displayName"] == "Alice"
    assert body["profile"]["batteryMode"] == "precision"
    assert body["stats"]["totalRuns"] == 2
    assert body["stats"]["totalPoints"] == 120
    assert body["stats"]["topSpeed"] == 80.0
    assert body["stats"]["resortCount"] == 2
    assert body["stats"]["friendCount"] == 0


def test_update_profile(client, register):
    _, headers = register()
    response = client.put(
        "/v1/profile",
        headers=headers,
        json={"displayName": "  <Ali>  ", "weightKg": 70, "batteryMode": "fullDay", "useMetric": False}
    )
    assert response.status_code == 200
    profile = response.json()["profile"]
    assert profile["displayName"] == "Ali"
    assert profile["weightKg"] == 70
    assert profile["batteryMode"] == "fullDay"
    assert profile["useMetric"] is False


def test_update_profile_validation(client, register):
    _, headers = register()
    assert client.put("/v1/profile", headers=headers, json={}).status_code == 400
    assert client.put("/v1/profile", headers=headers, json={"weightKg": 10}).status_code == 400
    assert client.put("/v1/profile", headers=headers, json={"batteryMode": "turbo"}).status_code == 400

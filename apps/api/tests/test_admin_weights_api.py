import json

import pytest


def _seed(api, doc=None):
    api.weights_path.write_text(
        json.dumps(
            doc
            or {
                "weights": {
                    "semantic": {"base": 0.4, "description": "semantic sim"},
                    "rating": {"base": 0.25},
                    "popularity": {"base": 0.15},
                    "recency": {"base": 0.1},
                    "preference": {"base": 0.1},
                },
                "boosts": {"genreMatch": 0.2},
                "version": "1.0",
                "lastUpdated": "2026-01-01T00:00:00+00:00",
            }
        ),
        encoding="utf-8",
    )


def test_get_weights_returns_current_config(api):
    _seed(api)
    res = api.client.get("/admin/weights")
    assert res.status_code == 200
    data = res.json()
    assert data["current"]["semantic"] == 0.4
    assert data["boosts"]["genreMatch"] == 0.2
    assert data["thresholds"]["highConfidence"] == 0.8
    assert data["version"] == "1.0"
    assert data["lastUpdated"] == "2026-01-01T00:00:00+00:00"


def test_get_weights_missing_config_404(api):
    res = api.client.get("/admin/weights")
    assert res.status_code == 404


def test_get_weights_corrupt_config_500(api):
    api.weights_path.write_text("invalid json", encoding="utf-8")
    res = api.client.get("/admin/weights")
    assert res.status_code == 500


def test_non_admin_forbidden(api):
    from app.deps.supabase_client import CurrentUser

    api.user = CurrentUser(id="someone", email="viewer@example.com")
    _seed(api)
    assert api.client.get("/admin/weights").status_code == 403
    res = api.client.post("/admin/weights", json={"weights": {"semantic": 0.5}})
    assert res.status_code == 403


def test_post_weights_normalizes_and_persists(api):
    _seed(api)
    res = api.client.post(
        "/admin/weights", json={"weights": {"semantic": 0.8, "rating": 0.2}}
    )
    assert res.status_code == 200
    data = res.json()
    assert data["success"] is True
    assert sum(data["updated"].values()) == pytest.approx(1.0, abs=1e-6)
    assert data["version"].startswith("2.0-manual-")

    doc = json.loads(api.weights_path.read_text(encoding="utf-8"))
    assert doc["weights"]["semantic"]["description"] == "semantic sim"
    assert doc["meta"]["lastUpdatedBy"] == "admin@example.com"

    # the admin GET reflects the write
    assert api.client.get("/admin/weights").json()["version"] == data["version"]


@pytest.mark.parametrize(
    "weights,field",
    [
        ({"semantic": 2}, "semantic"),
        ({"rating": "a lot"}, "rating"),
        ({"popularity": -0.5}, "popularity"),
        ({"mystery": 0.1}, "mystery"),
        ({"semantic": 0, "rating": 0}, "weights"),
    ],
)
def test_post_weights_rejects_bad_input_naming_field(api, weights, field):
    _seed(api)
    before = api.weights_path.read_text(encoding="utf-8")

    res = api.client.post("/admin/weights", json={"weights": weights})
    assert res.status_code == 400
    assert res.json()["detail"]["field"] == field
    assert api.weights_path.read_text(encoding="utf-8") == before


def test_post_weights_requires_weights_object(api):
    res = api.client.post("/admin/weights", json={"semantic": 0.5})
    assert res.status_code == 422

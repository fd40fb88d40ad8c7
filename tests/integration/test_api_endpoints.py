import json


def create_version(api, prompt="a cat", **extra) -> str:
    body = {"prompt": prompt, "image_url": "https://images.example/a.png", **extra}
    r = api.post("/versions", json=body)
    assert r.status_code == 201, r.text
    data = r.json()
    assert data["success"] is True
    return data["version_id"]


def test_root_and_health(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert client.get("/health").json() == {"status": "healthy"}


def test_version_lifecycle(api):
    root = create_version(api, "a cat", title="Cat")
    child = create_version(api, "a cat, detailed", parent_version_id=root)

    r = api.get(f"/versions/{child}")
    assert r.status_code == 200
    data = r.json()
    assert data["parent_version_id"] == root
    assert data["root_version_id"] == root
    assert data["version_number"] == 1
    assert data["type"] == "branch"
    assert data["branch_name"] == "main"

    r = api.get("/versions", params={"root_version_id": root})
    assert [v["id"] for v in r.json()["versions"]] == [root, child]

    r = api.patch(f"/versions/{child}", json={"title": "Detailed", "like_count": 2})
    assert r.status_code == 200
    assert api.get(f"/versions/{child}").json()["title"] == "Detailed"

    r = api.post(f"/versions/{child}/duplicate")
    assert r.status_code == 201
    copy_id = r.json()["version_id"]
    assert api.get(f"/versions/{copy_id}").json()["title"] == "Detailed (copy)"

    # root has children
    assert api.delete(f"/versions/{root}").status_code == 409
    assert api.delete(f"/versions/{copy_id}").status_code == 200
    assert api.get(f"/versions/{copy_id}").status_code == 404


def test_version_errors(api):
    r = api.post("/versions", json={"prompt": " ", "image_url": "x"})
    assert r.status_code == 400
    r = api.post("/versions", json={"prompt": "a", "image_url": "x", "parent_version_id": "nope"})
    assert r.status_code == 400
    assert api.get("/versions/nope").status_code == 404
    assert api.patch("/versions/nope", json={"title": "x"}).status_code == 404
    assert api.delete("/versions/nope").status_code == 404


def test_update_cannot_clear_required_fields(api):
    v = create_version(api)
    for field in ("ai_parameters", "dimensions", "view_count", "file_size"):
        r = api.patch(f"/versions/{v}", json={field: None})
        assert r.status_code == 400, field

    assert api.get(f"/versions/{v}").status_code == 200
    assert api.get("/history/statistics").json()["model_usage"] == {"unknown": 1}
    r = api.patch(f"/versions/{v}", json={"title": None})
    assert r.status_code == 200


def test_search_and_filter(api):
    create_version(api, "a cat on a sofa")
    dog = create_version(api, "a dog", ai_parameters={"model": "sdxl"})

    r = api.get("/versions/search", params={"q": "DOG"})
    assert [v["id"] for v in r.json()["versions"]] == [dog]

    r = api.post("/versions/filter", json={"model": "sdxl"})
    assert [v["id"] for v in r.json()["versions"]] == [dog]

    # timestamps without an offset are read as UTC
    r = api.post("/versions/filter", json={"start": "2020-01-01T00:00:00"})
    assert r.status_code == 200
    assert len(r.json()["versions"]) == 2
    r = api.post("/versions/filter", json={"end": "2020-01-01T00:00:00"})
    assert r.json()["versions"] == []


def test_branch_scenario(api):
    root = create_version(api)
    r = api.get("/branches")
    assert [b["name"] for b in r.json()["branches"]] == ["main"]

    r = api.post("/branches", json={"name": "feature", "source_version_id": root})
    assert r.status_code == 201
    feature_id = r.json()["branch_id"]
    assert api.get("/branches").json()["current_branch_id"] == feature_id

    assert api.post("/branches", json={"name": "FEATURE", "source_version_id": root}).status_code == 409
    assert api.post("/branches", json={"name": " ", "source_version_id": root}).status_code == 400

    # active branch cannot be deleted
    assert api.delete(f"/branches/{feature_id}").status_code == 409
    assert api.post("/branches/main/switch").status_code == 200
    assert api.delete(f"/branches/{feature_id}").status_code == 200
    assert api.get(f"/branches/{feature_id}").status_code == 404


def test_branch_rename_retire_and_history(api):
    root = create_version(api)
    child = create_version(api, "b", parent_version_id=root)
    r = api.post("/branches", json={"name": "feature", "source_version_id": root})
    feature_id = r.json()["branch_id"]
    api.post("/branches/main/switch")

    r = api.patch(f"/branches/{feature_id}", json={"new_name": "experiment"})
    assert r.status_code == 200
    assert api.get("/branches/experiment").json()["id"] == feature_id
    assert api.patch("/branches/main", json={"new_name": "trunk"}).status_code == 409

    assert api.post("/branches/experiment/retire").status_code == 200
    assert api.get("/branches/experiment").json()["is_active"] is False

    r = api.get("/branches/main/history")
    assert [v["id"] for v in r.json()["versions"]] == [root, child]


def test_merge_is_not_implemented(api):
    root = create_version(api)
    api.post("/branches", json={"name": "feature", "source_version_id": root})
    r = api.post("/branches/merge", json={"source_branch_id": "feature", "target_branch_id": "main"})
    assert r.status_code == 501


def test_conflicts(api):
    root = create_version(api, "a cat")
    api.post("/branches", json={"name": "feature", "source_version_id": root})
    create_version(api, "a dog", parent_version_id=root)

    r = api.get("/branches/conflicts", params={"source": "feature", "target": "main"})
    assert r.status_code == 200
    conflicts = r.json()["conflicts"]
    assert [c["field"] for c in conflicts] == ["prompt"]
    assert conflicts[0]["old_value"] == "a cat"
    assert conflicts[0]["new_value"] == "a dog"

    r = api.get("/branches/conflicts", params={"source": "ghost", "target": "main"})
    assert r.status_code == 404


def test_comparison_and_report(api):
    v1 = create_version(api, "a cat")
    v2 = create_version(api, "a cat, detailed", parent_version_id=v1)

    r = api.post("/comparisons", json={"version1_id": v1, "version2_id": v2})
    assert r.status_code == 200
    data = r.json()
    assert 0 < data["similarity"] < 1
    assert [d["field"] for d in data["differences"]] == ["prompt"]

    r = api.post("/comparisons/report", json={"version1_id": v1, "version2_id": v2})
    assert r.status_code == 200
    assert r.json()["report"].startswith("Version Comparison Report")

    r = api.post("/comparisons", json={"version1_id": v1, "version2_id": "nope"})
    assert r.status_code == 404


def test_history_endpoints(api):
    root = create_version(api)
    child = create_version(api, "b", parent_version_id=root)

    r = api.get(f"/history/tree/{child}")
    assert r.status_code == 200
    tree = r.json()
    assert tree["root_version"]["id"] == root
    assert tree["total_versions"] == 2
    assert tree["tree"]["children"][0]["version"]["id"] == child
    assert tree["tree"]["children"][0]["branch"]["name"] == "main"
    assert api.get("/history/tree/nope").status_code == 404

    r = api.get("/history/statistics")
    stats = r.json()
    assert stats["total_versions"] == 2
    assert len(stats["creation_frequency"]["daily"]) == 30
    assert stats["creation_frequency"]["daily"][-1] == 2

    r = api.get("/history/statistics/export", params={"format": "csv"})
    assert r.json()["content"].startswith("metric,value")
    assert api.get("/history/statistics/export", params={"format": "xml"}).status_code == 400

    r = api.get(f"/history/{child}")
    assert r.status_code == 200
    assert r.json()["stats"]["total_versions"] == 2
    assert api.get("/history/nope").status_code == 404


def test_empty_statistics(api):
    stats = api.get("/history/statistics").json()
    assert stats["total_versions"] == 0
    assert stats["model_usage"] == {}
    assert stats["creation_frequency"]["weekly"] == [0] * 12


def test_export_import(api):
    root = create_version(api)
    create_version(api, "b", parent_version_id=root)

    r = api.post("/transfer/export", json={"format": "json"})
    assert r.status_code == 200
    content = r.json()["content"]
    assert len(json.loads(content)["versions"]) == 2

    r = api.post("/transfer/import", json={"source_data": content, "merge_strategy": "append"})
    assert r.status_code == 409

    r = api.post("/transfer/import", json={"source_data": content, "merge_strategy": "replace"})
    assert r.status_code == 200
    assert len(api.get("/versions").json()["versions"]) == 2

    r = api.post("/transfer/import", json={"source_data": "[]", "merge_strategy": "replace"})
    assert r.status_code == 400
    assert api.post("/transfer/export", json={"version_ids": ["nope"]}).status_code == 404


def test_import_with_naive_timestamps(api):
    create_version(api)
    payload = {
        "versions": [
            {
                "id": "v1",
                "prompt": "a cat",
                "image_url": "u",
                "metadata": {"created_at": "2026-01-01T00:00:00"},
            }
        ]
    }
    r = api.post(
        "/transfer/import", json={"source_data": json.dumps(payload), "merge_strategy": "append"}
    )
    assert r.status_code == 200, r.text

    r = api.get("/history/statistics")
    assert r.status_code == 200
    assert r.json()["total_versions"] == 2
    assert api.get("/versions/v1").json()["created_at"].startswith("2026-01-01T00:00:00")

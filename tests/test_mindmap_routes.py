"""
Tests for /mindmaps endpoints.

Tests cover:
- Listing with and without a token (public + own private maps)
- Create / read / update / delete with ownership checks
- 404 for private maps of other users, on reads and writes alike
- camelCase wire format with epoch-millisecond timestamps
"""

import pytest


@pytest.fixture
def public_map(store, member_user):
    return store.insert_mindmap(member_user["id"], "Alice's public map", "# Public\n## Child",
                                description="shared")


@pytest.fixture
def private_map(store, member_user):
    return store.insert_mindmap(member_user["id"], "Alice's diary", "# Private", is_public=False)


# ============================================================
# Listing
# ============================================================

class TestListMindmaps:

    def test_anonymous_sees_public_only(self, client, public_map, private_map):
        response = client.get("/mindmaps")

        assert response.status_code == 200
        ids = [m["id"] for m in response.json()["mindMaps"]]
        assert ids == [public_map["id"]]

    def test_owner_sees_private_too(self, client, member_headers, public_map, private_map):
        response = client.get("/mindmaps", headers=member_headers)
        ids = {m["id"] for m in response.json()["mindMaps"]}
        assert ids == {public_map["id"], private_map["id"]}

    def test_other_user_does_not_see_private(self, client, other_headers, public_map, private_map):
        response = client.get("/mindmaps", headers=other_headers)
        ids = [m["id"] for m in response.json()["mindMaps"]]
        assert ids == [public_map["id"]]

    def test_invalid_token_treated_as_anonymous(self, client, public_map, private_map):
        response = client.get("/mindmaps", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 200
        assert len(response.json()["mindMaps"]) == 1

    def test_summary_wire_format(self, client, public_map, member_user):
        entry = client.get("/mindmaps").json()["mindMaps"][0]

        assert entry["title"] == "Alice's public map"
        assert entry["isPublic"] is True
        assert entry["userId"] == member_user["id"]
        assert entry["description"] == "shared"
        assert isinstance(entry["createdAt"], int)
        assert isinstance(entry["updatedAt"], int)
        assert "content" not in entry

    def test_empty(self, client):
        assert client.get("/mindmaps").json() == {"mindMaps": []}


# ============================================================
# Create
# ============================================================

class TestCreateMindmap:

    def test_requires_auth(self, client):
        response = client.post("/mindmaps", json={"title": "T", "content": "# T"})
        assert response.status_code == 401

    def test_create_defaults_to_public(self, client, member_headers, member_user):
        response = client.post(
            "/mindmaps",
            json={"title": "Plan", "content": "# Plan\n- step"},
            headers=member_headers,
        )

        assert response.status_code == 201
        mindmap = response.json()["mindMap"]
        assert mindmap["isPublic"] is True
        assert mindmap["userId"] == member_user["id"]
        assert mindmap["content"] == "# Plan\n- step"
        assert mindmap["createdAt"] == mindmap["updatedAt"]

    def test_create_private(self, client, member_headers, other_headers):
        response = client.post(
            "/mindmaps",
            json={"title": "Secret", "content": "# S", "description": "mine", "isPublic": False},
            headers=member_headers,
        )
        mindmap_id = response.json()["mindMap"]["id"]

        assert response.json()["mindMap"]["isPublic"] is False
        assert client.get(f"/mindmaps/{mindmap_id}").status_code == 404
        assert client.get(f"/mindmaps/{mindmap_id}", headers=other_headers).status_code == 404
        assert client.get(f"/mindmaps/{mindmap_id}", headers=member_headers).status_code == 200

    @pytest.mark.parametrize("body", [
        {"content": "# T"},
        {"title": "T"},
        {"title": "", "content": "# T"},
    ])
    def test_title_and_content_required(self, client, member_headers, body):
        response = client.post("/mindmaps", json=body, headers=member_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Title and content are required"

    def test_account_deleted_after_token_issued(self, client, member_headers, member_user, store):
        store.delete_user(member_user["id"])
        response = client.post("/mindmaps", json={"title": "T", "content": "# T"}, headers=member_headers)
        assert response.status_code == 401


# ============================================================
# Read
# ============================================================

class TestGetMindmap:

    def test_public_map_anonymous(self, client, public_map):
        response = client.get(f"/mindmaps/{public_map['id']}")
        assert response.status_code == 200
        assert response.json()["mindMap"]["content"] == "# Public\n## Child"

    def test_private_map_owner(self, client, member_headers, private_map):
        response = client.get(f"/mindmaps/{private_map['id']}", headers=member_headers)
        assert response.status_code == 200

    def test_private_map_other_user_is_404(self, client, other_headers, private_map):
        response = client.get(f"/mindmaps/{private_map['id']}", headers=other_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "Mindmap not found"

    def test_private_map_admin_is_404(self, client, admin_headers, private_map):
        assert client.get(f"/mindmaps/{private_map['id']}", headers=admin_headers).status_code == 404

    def test_unknown_id(self, client):
        response = client.get("/mindmaps/does-not-exist")
        assert response.status_code == 404

    def test_ownerless_map_readable(self, client, store):
        legacy = store.insert_mindmap(None, "Legacy", "# L", is_public=False)
        assert client.get(f"/mindmaps/{legacy['id']}").status_code == 200


# ============================================================
# Update / Delete
# ============================================================

class TestUpdateMindmap:

    def test_owner_updates(self, client, member_headers, public_map):
        response = client.put(
            f"/mindmaps/{public_map['id']}",
            json={"title": "Renamed", "content": "# Renamed", "isPublic": False},
            headers=member_headers,
        )

        assert response.status_code == 200
        mindmap = response.json()["mindMap"]
        assert mindmap["title"] == "Renamed"
        assert mindmap["isPublic"] is False
        assert mindmap["updatedAt"] >= mindmap["createdAt"]

    def test_visibility_kept_when_omitted(self, client, member_headers, private_map):
        response = client.put(
            f"/mindmaps/{private_map['id']}",
            json={"title": "Still private", "content": "# P"},
            headers=member_headers,
        )
        assert response.json()["mindMap"]["isPublic"] is False

    def test_anonymous(self, client, public_map):
        response = client.put(f"/mindmaps/{public_map['id']}", json={"title": "X", "content": "# X"})
        assert response.status_code == 401

    @pytest.mark.parametrize("fixture_name", ["public_map", "private_map"])
    def test_non_owner_gets_404(self, client, other_headers, request, fixture_name, store):
        mindmap = request.getfixturevalue(fixture_name)
        response = client.put(
            f"/mindmaps/{mindmap['id']}",
            json={"title": "Hijacked", "content": "# H"},
            headers=other_headers,
        )

        assert response.status_code == 404
        assert store.find_mindmap_visible_to(mindmap["id"], mindmap["user_id"])["title"] == mindmap["title"]

    def test_missing_fields(self, client, member_headers, public_map):
        response = client.put(f"/mindmaps/{public_map['id']}", json={"title": "X"}, headers=member_headers)
        assert response.status_code == 400

    def test_ownerless_map_any_signed_in_user(self, client, other_headers, store):
        legacy = store.insert_mindmap(None, "Legacy", "# L")
        response = client.put(
            f"/mindmaps/{legacy['id']}",
            json={"title": "Adopted", "content": "# A"},
            headers=other_headers,
        )
        assert response.status_code == 200


class TestDeleteMindmap:

    def test_owner_deletes(self, client, member_headers, public_map):
        response = client.delete(f"/mindmaps/{public_map['id']}", headers=member_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Mindmap deleted successfully"
        assert client.get(f"/mindmaps/{public_map['id']}").status_code == 404

    def test_non_owner_gets_404(self, client, other_headers, public_map, store):
        response = client.delete(f"/mindmaps/{public_map['id']}", headers=other_headers)
        assert response.status_code == 404
        assert store.find_mindmap_visible_to(public_map["id"], None) is not None

    def test_anonymous(self, client, public_map):
        assert client.delete(f"/mindmaps/{public_map['id']}").status_code == 401

    def test_unknown_id(self, client, member_headers):
        assert client.delete("/mindmaps/nope", headers=member_headers).status_code == 404

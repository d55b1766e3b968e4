"""Community vocabulary tests — submit, rename, merge, delete."""

import pytest
from sqlalchemy import func, select

from strengths.db.models import CommunityEntry
from strengths.services.community_service import CommunityService


async def submit(client, category, capability):
    r = await client.post(
        "/community-entries", json={"category": category, "capability": capability}
    )
    assert r.status_code in (200, 201), r.text
    return r


async def pairs(client) -> set[tuple[str, str]]:
    r = await client.get("/community-entries")
    assert r.status_code == 200
    return {(e["category"], e["capability"]) for e in r.json()}


# ═══════════════════════════════════════════════════════════
# Submit
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_submit_canonicalizes_labels(client):
    r = await submit(client, "  product   design ", "user interviewing")
    assert r.status_code == 201
    body = r.json()
    assert body["created"] is True
    assert body["entry"]["category"] == "Product Design"
    assert body["entry"]["capability"] == "User Interviewing"


@pytest.mark.asyncio
async def test_duplicate_pair_is_a_silent_no_op(client):
    first = await submit(client, "product design", "user interviewing")
    second = await submit(client, "Product Design", "User Interviewing")

    assert second.status_code == 200
    assert second.json()["created"] is False
    assert second.json()["entry"]["id"] == first.json()["entry"]["id"]

    r = await client.get("/community-entries")
    assert len(r.json()) == 1
    assert r.json()[0]["category"] == "Product Design"


@pytest.mark.asyncio
async def test_first_writer_wins_for_both_labels(client):
    await submit(client, "UX Research", "interviews")
    r = await submit(client, "ux research", "Interviews")
    assert r.json()["created"] is False
    assert await pairs(client) == {("Ux Research", "Interviews")}


@pytest.mark.asyncio
async def test_same_capability_in_different_categories_is_allowed(client):
    await submit(client, "Design", "Prototyping")
    r = await submit(client, "Engineering", "prototyping")
    assert r.status_code == 201
    assert await pairs(client) == {("Design", "Prototyping"), ("Engineering", "Prototyping")}


@pytest.mark.asyncio
async def test_new_capability_joins_existing_category_spelling(client):
    await submit(client, "ux research", "Interviews")
    r = await submit(client, "UX RESEARCH", "card sorting")
    assert r.json()["entry"]["category"] == "Ux Research"


@pytest.mark.asyncio
async def test_submit_requires_both_fields(client):
    r = await client.post("/community-entries", json={"category": "Design"})
    assert r.status_code == 400
    r = await client.post(
        "/community-entries", json={"category": "Design", "capability": "   "}
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_concurrent_insert_loser_becomes_no_op(db_session):
    db_session.add(CommunityEntry(category="Design", capability="Sketching"))
    await db_session.commit()

    svc = CommunityService(db_session)
    real_find = svc._find_pair
    calls = []

    async def racing_find(category, capability):
        # First lookup runs before the other writer's row is visible
        calls.append((category, capability))
        if len(calls) == 1:
            return None
        return await real_find(category, capability)

    svc._find_pair = racing_find
    result = await svc.submit("design", "sketching")

    assert result.created is False
    assert result.entry.capability == "Sketching"
    assert len(calls) == 2
    count = await db_session.scalar(select(func.count()).select_from(CommunityEntry))
    assert count == 1


# ═══════════════════════════════════════════════════════════
# Category rename / merge
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_rename_category_to_new_name(client):
    await submit(client, "Design", "Sketching")
    await submit(client, "Design", "Prototyping")

    r = await client.put(
        "/community-entries/update-category",
        json={"old_category": "design", "new_category": "visual design"},
    )
    assert r.status_code == 200
    assert r.json() == {"category": "Visual Design", "moved": 2, "removed": 0, "merged": False}
    assert await pairs(client) == {
        ("Visual Design", "Sketching"),
        ("Visual Design", "Prototyping"),
    }


@pytest.mark.asyncio
async def test_rename_into_existing_category_merges_and_dedupes(client):
    await submit(client, "engineering", "Prototyping")
    await submit(client, "Engineering", "Code Review")
    await submit(client, "Design", "prototyping")
    await submit(client, "Design", "Sketching")

    r = await client.put(
        "/community-entries/update-category",
        json={"old_category": "Design", "new_category": "ENGINEERING"},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["category"] == "Engineering"
    assert body["merged"] is True
    assert body["removed"] == 1
    assert body["moved"] == 1

    assert await pairs(client) == {
        ("Engineering", "Prototyping"),
        ("Engineering", "Code Review"),
        ("Engineering", "Sketching"),
    }
    r = await client.get("/community-entries")
    assert len(r.json()) == 3


@pytest.mark.asyncio
async def test_rename_to_same_canonical_name_is_a_no_op(client):
    await submit(client, "Design", "Sketching")
    r = await client.put(
        "/community-entries/update-category",
        json={"old_category": "Design", "new_category": "  DESIGN "},
    )
    assert r.status_code == 200
    assert r.json()["moved"] == 0
    assert await pairs(client) == {("Design", "Sketching")}


@pytest.mark.asyncio
async def test_rename_missing_category_changes_nothing(client):
    await submit(client, "Design", "Sketching")
    r = await client.put(
        "/community-entries/update-category",
        json={"old_category": "Marketing", "new_category": "Growth"},
    )
    assert r.status_code == 200
    assert r.json()["moved"] == 0
    assert await pairs(client) == {("Design", "Sketching")}


# ═══════════════════════════════════════════════════════════
# Capability rename
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_rename_capability(client):
    r = await submit(client, "Design", "sketchng")
    entry_id = r.json()["entry"]["id"]

    r = await client.put(f"/community-entries/{entry_id}", json={"capability": "sketching"})
    assert r.status_code == 200
    assert r.json()["entry"]["capability"] == "Sketching"
    assert r.json()["merged"] is False


@pytest.mark.asyncio
async def test_rename_capability_onto_sibling_collapses_rows(client):
    keep = (await submit(client, "Design", "Sketching")).json()["entry"]["id"]
    typo = (await submit(client, "Design", "Skeching")).json()["entry"]["id"]
    await submit(client, "Engineering", "Skeching")

    r = await client.put(f"/community-entries/{typo}", json={"capability": "SKETCHING"})
    assert r.status_code == 200
    assert r.json()["merged"] is True
    assert r.json()["entry"]["id"] == keep

    # Only the Design category was touched
    assert await pairs(client) == {("Design", "Sketching"), ("Engineering", "Skeching")}


@pytest.mark.asyncio
async def test_rename_unknown_capability_is_404(client):
    r = await client.put("/community-entries/9999", json={"capability": "x"})
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Deletes
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_delete_entry(client):
    entry_id = (await submit(client, "Design", "Sketching")).json()["entry"]["id"]
    r = await client.delete(f"/community-entries/{entry_id}")
    assert r.status_code == 204
    r = await client.delete(f"/community-entries/{entry_id}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_delete_category_ignores_case(client):
    await submit(client, "Design", "Sketching")
    await submit(client, "Design", "Prototyping")
    await submit(client, "Engineering", "Testing")

    r = await client.delete("/community-entries/category/design")
    assert r.status_code == 200
    assert r.json() == {"deleted": 2}
    assert await pairs(client) == {("Engineering", "Testing")}

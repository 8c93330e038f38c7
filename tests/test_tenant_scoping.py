"""Tests for tenant scoping and isolation"""

import pytest
from httpx import AsyncClient

from tests.conftest import auth_headers


@pytest.mark.asyncio
async def test_property_admin_cross_tenant_forbidden(property_admin_client: AsyncClient, hotel, restaurant):
    """Property admin reads their own property but not another"""
    own = await property_admin_client.get(f"/properties/{hotel.id}")
    other = await property_admin_client.get(f"/properties/{restaurant.id}")

    assert own.status_code == 200
    assert own.json()["data"]["property"]["code"] == "GRAND-HTL"
    assert other.status_code == 403
    assert other.json()["success"] is False


@pytest.mark.asyncio
async def test_property_admin_update_scoped(property_admin_client: AsyncClient, hotel, restaurant):
    own = await property_admin_client.put(f"/properties/{hotel.id}", json={"name": "Grand Palace Hotel & Spa"})
    other = await property_admin_client.put(f"/properties/{restaurant.id}", json={"name": "Taken Over"})

    assert own.status_code == 200
    assert own.json()["data"]["property"]["name"] == "Grand Palace Hotel & Spa"
    assert other.status_code == 403


@pytest.mark.asyncio
async def test_staff_reads_property_but_cannot_update(staff_client: AsyncClient, hotel):
    assert (await staff_client.get(f"/properties/{hotel.id}")).status_code == 200
    assert (await staff_client.put(f"/properties/{hotel.id}", json={"name": "Renamed"})).status_code == 403


@pytest.mark.asyncio
async def test_property_list_scoped(property_admin_client: AsyncClient, hotel, restaurant):
    """Non-admins only see their own property in listings"""
    response = await property_admin_client.get("/properties")

    assert response.status_code == 200
    data = response.json()["data"]
    assert [p["id"] for p in data["properties"]] == [hotel.id]
    assert data["pagination"]["total_items"] == 1


@pytest.mark.asyncio
async def test_user_access_scoped_to_property(client: AsyncClient, property_admin, staff_user, restaurant_admin):
    """Property admin can see hotel staff but not the restaurant's admin"""
    headers = auth_headers(property_admin)

    own = await client.get(f"/users/{staff_user.id}", headers=headers)
    other = await client.get(f"/users/{restaurant_admin.id}", headers=headers)

    assert own.status_code == 200
    assert other.status_code == 403


@pytest.mark.asyncio
async def test_staff_sees_only_self(client: AsyncClient, staff_user, property_admin):
    headers = auth_headers(staff_user)

    assert (await client.get(f"/users/{staff_user.id}", headers=headers)).status_code == 200
    assert (await client.get(f"/users/{property_admin.id}", headers=headers)).status_code == 403

    response = await client.get("/users", headers=headers)
    assert [u["id"] for u in response.json()["data"]["users"]] == [staff_user.id]


@pytest.mark.asyncio
async def test_user_list_scoped(client: AsyncClient, master_admin, property_admin, staff_user, restaurant_admin):
    """Property admin lists only their property's users; Master Admin lists all"""
    response = await client.get("/users", headers=auth_headers(property_admin))
    ids = {u["id"] for u in response.json()["data"]["users"]}
    assert ids == {property_admin.id, staff_user.id}

    response = await client.get("/users", headers=auth_headers(master_admin))
    assert response.json()["data"]["pagination"]["total_items"] == 4


@pytest.mark.asyncio
async def test_master_admin_reaches_every_property(admin_client: AsyncClient, hotel, restaurant):
    for prop in (hotel, restaurant):
        response = await admin_client.get(f"/properties/{prop.id}")
        assert response.status_code == 200

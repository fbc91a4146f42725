"""
RentCar Backend — Review & Ranking API Tests
==============================================

What:  HTTP tests for /api/reviews and /api/ranking.
How:   A completed rental is seeded so the renter may review; rankings are
       computed through the same endpoints the web client uses.
"""

import pytest
import pytest_asyncio

from app.models.enums import RentalStatus, UserRole


@pytest_asyncio.fixture
async def returned_rental(make_user, make_car, make_rental, user_token, auth_headers, utc):
    owner = await make_user(role=UserRole.OWNER)
    renter = await make_user(first_name="Renata")
    car = await make_car(owner)
    await make_rental(renter, car, utc(days=-12), status=RentalStatus.COMPLETED)
    return {
        "owner": owner,
        "renter": renter,
        "car": car,
        "renter_headers": auth_headers(user_token(renter)),
    }


async def post_review(client, ctx, **fields):
    body = {"car_id": str(ctx["car"].id), "rating": 5, "comment": "Spotless and easy pickup."}
    body.update(fields)
    return await client.post("/api/reviews", json=body, headers=ctx["renter_headers"])


class TestReviewEndpoints:

    @pytest.mark.asyncio
    async def test_create_review(self, test_client, returned_rental):
        response = await post_review(test_client, returned_rental)
        assert response.status_code == 201
        assert response.json()["is_verified"] is True

        car = (await test_client.get(f"/api/cars/{returned_rental['car'].id}")).json()
        assert car["rating"] == 5.0
        assert car["rating_stats"]["distribution"]["5"] == 1

    @pytest.mark.asyncio
    async def test_second_review_is_409(self, test_client, returned_rental):
        await post_review(test_client, returned_rental)
        response = await post_review(test_client, returned_rental, rating=2)
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_rating_out_of_range_is_422(self, test_client, returned_rental):
        response = await post_review(test_client, returned_rental, rating=6)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_review_without_rental_is_400(self, test_client, make_user, make_car, user_token, auth_headers):
        owner = await make_user(role=UserRole.OWNER)
        car = await make_car(owner)
        stranger = await make_user()
        response = await test_client.post(
            "/api/reviews",
            json={"car_id": str(car.id), "rating": 4},
            headers=auth_headers(user_token(stranger)),
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_anonymous_review_hides_author(self, test_client, returned_rental):
        created = await post_review(test_client, returned_rental, is_anonymous=True)
        assert created.json()["user_id"] is None

        listed = await test_client.get(f"/api/reviews/car/{returned_rental['car'].id}")
        assert listed.json()[0]["user_id"] is None

    @pytest.mark.asyncio
    async def test_owner_stats(self, test_client, returned_rental):
        await post_review(test_client, returned_rental, rating=4)
        response = await test_client.get(f"/api/reviews/stats/owner/{returned_rental['owner'].id}")
        assert response.status_code == 200
        assert response.json()["average_rating"] == 4.0

    @pytest.mark.asyncio
    async def test_report_and_helpful(self, test_client, returned_rental):
        review_id = (await post_review(test_client, returned_rental)).json()["id"]
        headers = returned_rental["renter_headers"]

        helpful = await test_client.post(f"/api/reviews/{review_id}/helpful", headers=headers)
        assert helpful.json()["helpful_count"] == 1

        reported = await test_client.post(
            f"/api/reviews/{review_id}/report", json={"reason": "Off-topic rant"}, headers=headers
        )
        assert reported.json()["is_reported"] is True

    @pytest.mark.asyncio
    async def test_respond_requires_admin(self, test_client, returned_rental, make_user, user_token, auth_headers):
        review_id = (await post_review(test_client, returned_rental)).json()["id"]
        denied = await test_client.post(
            f"/api/reviews/{review_id}/respond",
            json={"response": "Thanks!"},
            headers=returned_rental["renter_headers"],
        )
        assert denied.status_code == 403

        admin = await make_user(role=UserRole.ADMIN)
        response = await test_client.post(
            f"/api/reviews/{review_id}/respond",
            json={"response": "Thanks!"},
            headers=auth_headers(user_token(admin)),
        )
        assert response.json()["admin_response"] == "Thanks!"

    @pytest.mark.asyncio
    async def test_edit_and_delete(self, test_client, returned_rental):
        review_id = (await post_review(test_client, returned_rental)).json()["id"]
        headers = returned_rental["renter_headers"]

        edited = await test_client.patch(f"/api/reviews/{review_id}", json={"rating": 3}, headers=headers)
        assert edited.json()["is_edited"] is True

        deleted = await test_client.delete(f"/api/reviews/{review_id}", headers=headers)
        assert deleted.status_code == 204
        assert (await test_client.get(f"/api/reviews/{review_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_null_rating_is_400(self, test_client, returned_rental):
        review_id = (await post_review(test_client, returned_rental)).json()["id"]
        response = await test_client.patch(
            f"/api/reviews/{review_id}", json={"rating": None}, headers=returned_rental["renter_headers"]
        )
        assert response.status_code == 400
        assert response.json()["details"] == {"field": "rating"}
        assert (await test_client.get(f"/api/reviews/{review_id}")).json()["rating"] == 5


class TestRankingEndpoints:

    @pytest.mark.asyncio
    async def test_my_ranking_created_on_first_access(self, test_client, returned_rental):
        response = await test_client.get("/api/ranking/me", headers=returned_rental["renter_headers"])
        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "rental_count"
        assert body["statistics"]["total_rentals"] == 1
        assert "first_rental" in body["achievements"]

    @pytest.mark.asyncio
    async def test_refresh_then_leaderboard(self, test_client, returned_rental, make_user, user_token, auth_headers):
        admin = await make_user(role=UserRole.ADMIN)
        refreshed = await test_client.post(
            "/api/ranking/refresh", headers=auth_headers(user_token(admin))
        )
        assert refreshed.status_code == 200
        assert refreshed.json()["owners_ranked"] == 1

        board = (await test_client.get("/api/ranking/leaderboard")).json()
        assert board[0]["first_name"] == "Renata"
        assert board[0]["position"] == 1

        owners = (await test_client.get("/api/ranking/top/earnings")).json()
        assert owners[0]["user_id"] == str(returned_rental["owner"].id)

    @pytest.mark.asyncio
    async def test_refresh_requires_admin(self, test_client, returned_rental):
        response = await test_client.post(
            "/api/ranking/refresh", headers=returned_rental["renter_headers"]
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_self_edit_limited_fields(self, test_client, returned_rental):
        headers = returned_rental["renter_headers"]
        ranking_id = (await test_client.get("/api/ranking/me", headers=headers)).json()["id"]

        ok = await test_client.patch(
            f"/api/ranking/{ranking_id}", json={"motivation_message": "Road trip season"}, headers=headers
        )
        assert ok.status_code == 200

        denied = await test_client.patch(
            f"/api/ranking/{ranking_id}", json={"tier": "diamond"}, headers=headers
        )
        assert denied.status_code == 403
        assert denied.json()["details"] == {"fields": ["tier"]}

    @pytest.mark.asyncio
    async def test_car_score(self, test_client, returned_rental):
        response = await test_client.get(f"/api/ranking/car/{returned_rental['car'].id}")
        assert response.status_code == 200
        assert response.json()["statistics"]["total_rentals"] == 1

    @pytest.mark.asyncio
    async def test_missing_user_ranking_is_404(self, test_client, returned_rental):
        response = await test_client.get(f"/api/ranking/user/{returned_rental['owner'].id}")
        assert response.status_code == 404

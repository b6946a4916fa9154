# tests for per-user usage accounting and the user-stats route

from mindmirror.services.usage_service import MAX_API_LOGS, get_user_stats, record_api_call
from tests.conftest import USER_ID, reflection_doc


class TestRecordApiCall:

    async def test_first_call_creates_counters(self, mock_db):
        await record_api_call(mock_db, USER_ID, "daily-text", True)
        user = mock_db.users._data[0]
        assert user["api_request_count"] == 1
        assert user["api_usage"]["by_type"] == {"daily-text": 1}
        assert sum(user["api_usage"]["by_date"].values()) == 1
        assert user["api_logs"][0]["operation"] == "daily-text"
        assert user["api_logs"][0]["success"] is True

    async def test_counters_accumulate(self, mock_db):
        await record_api_call(mock_db, USER_ID, "daily-text", True)
        await record_api_call(mock_db, USER_ID, "daily-text", False)
        await record_api_call(mock_db, USER_ID, "weekly", True)
        assert len(mock_db.users._data) == 1
        user = mock_db.users._data[0]
        assert user["api_request_count"] == 3
        assert user["api_usage"]["by_type"] == {"daily-text": 2, "weekly": 1}

    async def test_log_is_capped(self, mock_db):
        for _ in range(MAX_API_LOGS + 5):
            await record_api_call(mock_db, USER_ID, "daily-audio", True)
        user = mock_db.users._data[0]
        assert len(user["api_logs"]) == MAX_API_LOGS
        assert user["api_request_count"] == MAX_API_LOGS + 5

    async def test_storage_failure_is_swallowed(self, mock_db):
        async def broken_update(*args, **kwargs):
            raise ConnectionError("mongodb unreachable")

        mock_db.users.update_one = broken_update
        # must not raise
        await record_api_call(mock_db, USER_ID, "weekly", True)


class TestGetUserStats:

    async def test_unknown_user_is_zeroed(self, mock_db):
        stats = await get_user_stats(mock_db, "uid_nobody")
        assert stats.api_request_count == 0
        assert stats.api_usage.by_date == {}
        assert stats.api_logs == []
        assert stats.reflection_count == 0

    async def test_counts_reflections(self, mock_db):
        mock_db.reflections._data.extend([reflection_doc(hours_ago=i) for i in range(3)])
        stats = await get_user_stats(mock_db, USER_ID)
        assert stats.reflection_count == 3


class TestUserStatsRoute:

    async def test_stats_after_calls(self, client, mock_db):
        await record_api_call(mock_db, USER_ID, "daily-text", True)
        await record_api_call(mock_db, USER_ID, "weekly", False)
        response = await client.get(f"/api/user-stats/{USER_ID}")
        assert response.status_code == 200
        stats = response.json()["stats"]
        assert stats["apiRequestCount"] == 2
        assert stats["apiUsage"]["byType"] == {"daily-text": 1, "weekly": 1}
        assert [log["operation"] for log in stats["apiLogs"]] == ["daily-text", "weekly"]
        assert stats["apiLogs"][1]["success"] is False

    async def test_new_user(self, client):
        stats = (await client.get("/api/user-stats/uid_brand_new")).json()["stats"]
        assert stats == {
            "apiRequestCount": 0,
            "apiUsage": {"byDate": {}, "byType": {}},
            "apiLogs": [],
            "reflectionCount": 0,
        }

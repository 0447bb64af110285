"""
Tests for the MongoDB repositories, with motor collections mocked out.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from api.database import BookRepository, Database, UserRepository, build_page
from api.models import ListParams, SortOrder


@pytest.fixture
def cursor():
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[])
    return cursor


@pytest.fixture
def collection(cursor):
    collection = MagicMock()
    collection.name = "test"
    collection.find.return_value = cursor
    collection.find_one = AsyncMock(return_value=None)
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.count_documents = AsyncMock(return_value=0)
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId()))
    collection.update_one = AsyncMock()
    collection.create_index = AsyncMock()
    return collection


class TestBuildPage:
    """Test cases for page metadata."""

    def test_middle_page(self):
        page = build_page([{}] * 10, 35, ListParams(page=2, limit=10))
        assert page.total_pages == 4
        assert page.paging_counter == 11
        assert (page.has_prev_page, page.has_next_page) == (True, True)
        assert (page.prev_page, page.next_page) == (1, 3)

    def test_empty_result(self):
        page = build_page([], 0, ListParams())
        assert page.total_pages == 1
        assert (page.has_prev_page, page.has_next_page) == (False, False)

    def test_pagination_disabled(self):
        page = build_page([{}] * 3, 3, ListParams(paginate=False))
        assert (page.limit, page.page, page.total_pages) == (3, 1, 1)


class TestUserRepository:
    """Test cases for UserRepository."""

    @pytest.mark.asyncio
    async def test_get_hides_password(self, collection):
        user_id = ObjectId()
        await UserRepository(collection).get(str(user_id))
        collection.find_one.assert_awaited_once_with({"_id": user_id}, {"password": 0})

    @pytest.mark.asyncio
    async def test_get_with_password(self, collection):
        user_id = ObjectId()
        await UserRepository(collection).get(user_id, with_password=True)
        collection.find_one.assert_awaited_once_with({"_id": user_id})

    @pytest.mark.asyncio
    async def test_find_by_username_excludes_self(self, collection):
        user_id = ObjectId()
        await UserRepository(collection).find_by_username("ann1", exclude_id=str(user_id))
        collection.find_one.assert_awaited_once_with(
            {"username": "ann1", "_id": {"$ne": user_id}}, {"password": 0}
        )

    @pytest.mark.asyncio
    async def test_find_by_email_without_exclusion(self, collection):
        await UserRepository(collection).find_by_email("ann@x.io")
        collection.find_one.assert_awaited_once_with({"email": "ann@x.io"}, {"password": 0})

    @pytest.mark.asyncio
    async def test_paginate_searches_all_text_fields(self, collection, cursor):
        collection.count_documents.return_value = 25
        cursor.to_list.return_value = [{"_id": ObjectId(), "name": "Ann"}]

        page = await UserRepository(collection).paginate(ListParams(page=3, limit=10, query="a.n"))

        pattern = {"$regex": r"a\.n", "$options": "i"}
        expected_filter = {"$or": [{"name": pattern}, {"username": pattern}, {"email": pattern}]}
        collection.count_documents.assert_awaited_once_with(expected_filter)
        collection.find.assert_called_once_with(expected_filter, {"password": 0})
        cursor.sort.assert_called_once_with([("name", 1)])
        cursor.skip.assert_called_once_with(20)
        cursor.limit.assert_called_once_with(10)
        assert page.total_docs == 25
        assert page.page == 3

    @pytest.mark.asyncio
    async def test_ensure_indexes(self, collection):
        await UserRepository(collection).ensure_indexes()
        collection.create_index.assert_any_await("username", unique=True)
        collection.create_index.assert_any_await("email", unique=True)


class TestBookRepository:
    """Test cases for BookRepository."""

    @pytest.mark.asyncio
    async def test_paginate_all_descending(self, collection, cursor):
        collection.count_documents.return_value = 2

        page = await BookRepository(collection).paginate(
            ListParams(paginate=False, sort=SortOrder.DESC, query="go")
        )

        collection.find.assert_called_once_with({"title": {"$regex": "go", "$options": "i"}}, None)
        cursor.sort.assert_called_once_with([("title", -1)])
        cursor.skip.assert_not_called()
        assert page.limit == 2

    @pytest.mark.asyncio
    async def test_paginate_without_query_matches_everything(self, collection):
        await BookRepository(collection).paginate(ListParams())
        collection.count_documents.assert_awaited_once_with({})

    @pytest.mark.asyncio
    async def test_find_by_slug(self, collection):
        await BookRepository(collection).find_by_slug("go-in-action")
        collection.find_one.assert_awaited_once_with({"slug": "go-in-action"}, None)

    @pytest.mark.asyncio
    async def test_create_sets_id_and_timestamps(self, collection):
        book = await BookRepository(collection).create({"title": "Go in Action"})
        assert book["_id"] == collection.insert_one.return_value.inserted_id
        assert book["created_at"] == book["updated_at"]

    @pytest.mark.asyncio
    async def test_save_sets_only_present_fields(self, collection):
        book_id = ObjectId()
        await BookRepository(collection).save({"_id": book_id, "author": None})

        filter_query, update = collection.update_one.await_args.args
        assert filter_query == {"_id": book_id}
        assert set(update["$set"]) == {"author", "updated_at"}
        assert update["$set"]["author"] is None

    @pytest.mark.asyncio
    async def test_delete(self, collection):
        book_id = ObjectId()
        await BookRepository(collection).delete(str(book_id))
        collection.find_one_and_delete.assert_awaited_once_with({"_id": book_id}, projection=None)

    @pytest.mark.asyncio
    async def test_get_many_skips_query_for_no_ids(self, collection):
        assert await BookRepository(collection).get_many([]) == {}
        collection.find.assert_not_called()


class TestDatabase:
    """Test cases for the store handle."""

    @pytest.mark.asyncio
    async def test_health_check_when_not_connected(self):
        result = await Database("mongodb://localhost:27017", "test").health_check()
        assert result["status"] == "unhealthy"

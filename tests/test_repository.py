import asyncio

import pytest
import pytest_asyncio

from page_composer.exceptions import ConflictError, NotFoundError, StaleVersionError
from page_composer.models.enums import PageStatus
from page_composer.models.page import ComponentInstance
from page_composer.persistence.in_memory import InMemoryPageRepository
from page_composer.persistence.sql_repository import SQLPageRepository
from page_composer.utils import compute_checksum


HERO = ComponentInstance(component_type="hero_banner", settings={"heading": "Hi"})
TEXT = ComponentInstance(component_type="text_content", settings={"content": "Body"})


@pytest_asyncio.fixture(params=["memory", "sql"])
async def repo(request):
    if request.param == "memory":
        yield InMemoryPageRepository()
        return
    repository = SQLPageRepository("sqlite+aiosqlite:///:memory:")
    yield repository
    await repository.dispose()


class TestPageRepositoryContract:
    @pytest.mark.asyncio
    async def test_create_and_get(self, repo):
        page = await repo.create_page(slug="about", title="About", created_by="alice")
        assert page.status == PageStatus.DRAFT
        assert page.version == 1
        assert page.last_modified_by == "alice"

        loaded = await repo.get_page(page.id)
        assert loaded == page
        assert (await repo.get_page_by_slug("about")).id == page.id
        assert await repo.get_page_by_slug("missing") is None

    @pytest.mark.asyncio
    async def test_create_records_first_version(self, repo):
        page = await repo.create_page(slug="about", title="About", content_data=[HERO])
        versions = await repo.list_versions(page.id)
        assert [v.version for v in versions] == [1]
        assert versions[0].change_description == "Created page"
        assert versions[0].content_data == (HERO,)
        assert versions[0].checksum == compute_checksum([HERO])

    @pytest.mark.asyncio
    async def test_slug_conflict(self, repo):
        await repo.create_page(slug="about", title="About")
        with pytest.raises(ConflictError) as exc:
            await repo.create_page(slug="about", title="Again")
        assert exc.value.code == "page.slug_conflict"

    @pytest.mark.asyncio
    async def test_get_missing(self, repo):
        with pytest.raises(NotFoundError) as exc:
            await repo.get_page("nope")
        assert exc.value.code == "page.not_found"

    @pytest.mark.asyncio
    async def test_replace_content_bumps_version(self, repo):
        page = await repo.create_page(slug="about", title="About")
        updated = await repo.replace_content(
            page.id, [HERO, TEXT], modified_by="bob", change_description="Added"
        )
        assert updated.version == 2
        assert updated.content_data == (HERO, TEXT)
        assert updated.last_modified_by == "bob"
        assert updated.updated_at >= page.updated_at
        assert await repo.get_page(page.id) == updated

        latest = (await repo.list_versions(page.id))[0]
        assert latest.version == 2
        assert latest.created_by == "bob"
        assert latest.change_description == "Added"

    @pytest.mark.asyncio
    async def test_expected_version(self, repo):
        page = await repo.create_page(slug="about", title="About")
        await repo.replace_content(page.id, [HERO], expected_version=1)
        with pytest.raises(StaleVersionError) as exc:
            await repo.replace_content(page.id, [TEXT], expected_version=1)
        assert exc.value.expected == 1
        assert exc.value.actual == 2
        assert isinstance(exc.value, ConflictError)
        assert (await repo.get_page(page.id)).content_data == (HERO,)
        assert len(await repo.list_versions(page.id)) == 2

    @pytest.mark.asyncio
    async def test_set_status_publish_stamps(self, repo):
        page = await repo.create_page(slug="about", title="About")
        published = await repo.set_status(
            page.id, PageStatus.PUBLISHED, modified_by="carol"
        )
        assert published.status == PageStatus.PUBLISHED
        assert published.version == 2
        assert published.published_at is not None
        assert published.published_by == "carol"

        draft = await repo.set_status(page.id, PageStatus.DRAFT)
        assert draft.status == PageStatus.DRAFT
        assert draft.version == 3
        # the last publication is kept on record
        assert draft.published_at == published.published_at

    @pytest.mark.asyncio
    async def test_update_details_keeps_version(self, repo):
        page = await repo.create_page(slug="about", title="About")
        updated = await repo.update_details(
            page.id, title="About us", slug="about-us", meta_title="About | Uni"
        )
        assert updated.version == 1
        assert updated.title == "About us"
        assert (await repo.get_page_by_slug("about-us")).id == page.id
        assert await repo.get_page_by_slug("about") is None
        assert len(await repo.list_versions(page.id)) == 1

    @pytest.mark.asyncio
    async def test_update_details_slug_conflict(self, repo):
        await repo.create_page(slug="taken", title="Taken")
        page = await repo.create_page(slug="about", title="About")
        with pytest.raises(ConflictError):
            await repo.update_details(page.id, slug="taken")

    @pytest.mark.asyncio
    async def test_update_details_unknown_field(self, repo):
        page = await repo.create_page(slug="about", title="About")
        with pytest.raises(ValueError):
            await repo.update_details(page.id, version=9)

    @pytest.mark.asyncio
    async def test_list_pages(self, repo):
        a = await repo.create_page(slug="a", title="A")
        b = await repo.create_page(slug="b", title="B")
        await repo.set_status(a.id, PageStatus.PUBLISHED)

        pages = await repo.list_pages()
        assert [p.id for p in pages] == [a.id, b.id]
        published = await repo.list_pages(PageStatus.PUBLISHED)
        assert [p.id for p in published] == [a.id]

    @pytest.mark.asyncio
    async def test_versions(self, repo):
        page = await repo.create_page(slug="about", title="About")
        await repo.replace_content(page.id, [HERO])
        await repo.replace_content(page.id, [HERO, TEXT])

        versions = await repo.list_versions(page.id)
        assert [v.version for v in versions] == [3, 2, 1]
        second = await repo.get_version(page.id, 2)
        assert second.content_data == (HERO,)
        with pytest.raises(NotFoundError) as exc:
            await repo.get_version(page.id, 9)
        assert exc.value.code == "page.version_not_found"
        with pytest.raises(NotFoundError):
            await repo.list_versions("nope")


class TestInMemoryIsolation:
    @pytest.mark.asyncio
    async def test_concurrent_writes_serialize(self):
        repo = InMemoryPageRepository()
        page = await repo.create_page(slug="about", title="About")
        await asyncio.gather(
            *(repo.replace_content(page.id, [HERO] * n) for n in range(1, 6))
        )
        final = await repo.get_page(page.id)
        assert final.version == 6
        assert [v.version for v in await repo.list_versions(page.id)] == [6, 5, 4, 3, 2, 1]

    @pytest.mark.asyncio
    async def test_returned_pages_are_copies(self):
        repo = InMemoryPageRepository()
        page = await repo.create_page(slug="about", title="About", content_data=[HERO])
        page.content_data[0].settings["heading"] = "Changed"
        assert (await repo.get_page(page.id)).content_data[0].settings == {"heading": "Hi"}

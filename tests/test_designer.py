import json

import httpx
import pytest

from bigday.design import FormFieldBlock, default_design
from bigday.design_mapper import to_backend_payload
from bigday.designer import DesignerPage
from bigday.models import Event
from bigday.storage import share_key


class DesignServer:
    def __init__(self, saved=None):
        self.saved = saved
        self.posts = []
        self.published = []

    def __call__(self, request):
        path = request.url.path.replace("/api", "", 1)
        if path == "/events/ev-1/rsvp-form-fields":
            return httpx.Response(200, json={"data": [
                {"id": "7", "label": "Meal", "type": 2, "isRequired": True, "options": ["Fish", "Veg"], "order": 1},
                {"id": "8", "label": "Song", "type": 0, "order": 2}]})
        if path == "/events/ev-1/rsvp-design" and request.method == "GET":
            if self.saved is None:
                return httpx.Response(404, json={"message": "no design"})
            return httpx.Response(200, json={"data": self.saved})
        if path == "/events/ev-1/rsvp-design" and request.method == "POST":
            body = json.loads(request.content)
            self.posts.append(body)
            version = len(self.posts)
            self.saved = {**body, "version": version, "eventGuid": "ev-1"}
            return httpx.Response(200, json={"data": {"version": version}})
        if path.startswith("/events/ev-1/rsvp-design/publish/"):
            self.published.append(int(path.rsplit("/", 1)[1]))
            return httpx.Response(200, json={"data": {}})
        return httpx.Response(404, json={"message": "no route"})


@pytest.fixture
def server():
    return DesignServer()


@pytest.fixture
def page(server, make_api, cache, storage, settings):
    return DesignerPage(Event(id="ev-1", title="Ana & Ben"), make_api(server), cache, storage, settings)


class TestDesignerPage:

    def test_missing_design_starts_from_defaults(self, page):
        assert page.loaded and not page.dirty
        assert page.design.blocks[0].subtitle == "Ana & Ben"
        assert [f.id for f in page.design.form_field_configs] == ["7", "8"]
        assert not page.act_publish.isEnabled()

    def test_saved_design_is_loaded(self, make_api, cache, storage, settings):
        design = default_design("Saved title")
        server = DesignServer({**to_backend_payload(design, "ev-1"), "version": 4, "eventGuid": "ev-1"})
        p = DesignerPage(Event(id="ev-1", title="Ana & Ben"), make_api(server), cache, storage, settings)
        assert p.design.blocks[0].subtitle == "Saved title"
        assert p.design.version == 4
        assert p.act_publish.isEnabled()

    def test_edits_mark_dirty_and_save_clears(self, page, server):
        states = []
        page.dirtyChanged.connect(states.append)
        page.add_block("info")
        assert page.dirty
        page.save()
        assert server.posts[-1]["design"]["blocks"][-1]["type"] == "info"
        assert page.design.version == 1
        assert not page.dirty
        assert states == [True, False]

    def test_insert_question_once(self, page):
        page.insert_question(page.design.form_field_configs[0])
        page.insert_question(page.design.form_field_configs[0])
        linked = [b for b in page.design.blocks if isinstance(b, FormFieldBlock)]
        assert [b.question_id for b in linked] == ["7"]
        assert not page.questions_menu.actions()[0].isEnabled()
        assert page.questions_menu.actions()[1].isEnabled()

    def test_publish_needs_version(self, page, server):
        page.publish()
        assert server.published == []
        page.save()
        page.publish()
        assert server.published == [1]

    def test_refetch_keeps_local_edits(self, page, cache):
        page.add_block("cta")
        count = len(page.design.blocks)
        cache.invalidate(page.design_key)
        assert len(page.design.blocks) == count

    def test_generate_link_saves_snapshot(self, page, storage, settings):
        page.generate_link()
        token = page.design.share_token
        assert page.design.public_link == f"{settings.public_base_url.rstrip('/')}/rsvp/submit/{token}"
        assert storage.get_json(share_key(token))["eventTitle"] == "Ana & Ben"
        assert page.act_copy.isEnabled()
        page.add_block("text")
        assert len(storage.get_json(share_key(token))["blocks"]) == len(page.design.blocks)

    def test_reorder_via_list(self, page):
        first = page.design.blocks[0].id
        page.block_list.select_block(first)
        page.block_list.move_current(1)
        assert page.design.blocks[1].id == first

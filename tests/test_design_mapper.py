from bigday.design import (BlockBackground, BlockMedia, CtaBlock, FormFieldBlock, GuestDetailsBlock,
                           ImageBlock, RsvpDesign, TextBlock, default_design)
from bigday.design_mapper import (block_from_backend, block_to_backend, to_backend_payload,
                                  to_frontend_design, validate_design)
from bigday.models import FormFieldConfig


def sample_design():
    design = default_design("Ana & Ben")
    design.blocks.append(FormFieldBlock(label="Meal", question_id="12", width="half", required=True))
    design.blocks.append(CtaBlock(label="Reply now", href="#rsvp"))
    design.blocks.append(ImageBlock(images=[BlockMedia(id="m1", src="a.jpg")], active_image_id="m1"))
    design.music_url = "https://example.com/song.mp3"
    design.form_field_configs = [FormFieldConfig(id="12", label="Meal", type_key="select")]
    return design


class TestToBackend:

    def test_payload_shape(self):
        payload = to_backend_payload(sample_design(), "ev-1")
        assert payload["eventId"] == "ev-1"
        assert payload["isDraft"] is True and payload["isPublished"] is False
        design = payload["design"]
        assert design["theme"]["musicUrl"] == "https://example.com/song.mp3"
        assert design["layout"] == {"width": 1200, "maxHeight": 0}
        assert design["formFieldConfigs"][0]["id"] == "12"
        assert [b["type"] for b in design["blocks"]][-3:] == ["formField", "cta", "image"]

    def test_no_music_key_without_url(self):
        assert "musicUrl" not in to_backend_payload(default_design(), "ev-1")["design"]["theme"]

    def test_width_and_legacy_id(self):
        out = block_to_backend(FormFieldBlock(question_id="12", width="half"), "#fff")
        assert out["width"] == 50
        assert out["questionId"] == "12" and out["formFieldId"] == 12
        out = block_to_backend(FormFieldBlock(question_id="q-a"), "#fff")
        assert out["width"] == 100
        assert "formFieldId" not in out

    def test_overlay_is_nested(self):
        block = TextBlock(background=BlockBackground(overlay=0.6))
        out = block_to_backend(block, "#fff")
        assert out["background"]["overlay"] == {"opacity": 0.6, "color": "#0f172a"}

    def test_cta_label_key(self):
        assert block_to_backend(CtaBlock(label="Go"), "#fff")["ctaLabel"] == "Go"


class TestFromBackend:

    def test_round_trip_preserves_blocks(self):
        design = sample_design()
        back = to_frontend_design(to_backend_payload(design, "ev-1"))
        assert [b.kind for b in back.blocks] == [b.kind for b in design.blocks]
        assert back.blocks[4].question_id == "12"
        assert back.blocks[4].width == "half"
        assert back.blocks[5].label == "Reply now"
        assert back.music_url == design.music_url
        assert back.form_field_configs[0].type_key == "select"

    def test_saved_response_metadata(self):
        body = {"eventGuid": "ev-1", "version": 3, "shareToken": "abc", "design": {"blocks": []}}
        design = to_frontend_design(body)
        assert (design.event_guid, design.version, design.share_token) == ("ev-1", 3, "abc")
        assert design.flow_preset == "serene"
        assert design.overlay == 0.25

    def test_legacy_form_field_id(self):
        block = block_from_backend({"id": "b", "type": "formField", "formFieldId": 5, "width": 50})
        assert block.question_id == "5"
        assert block.width == "half"

    def test_plain_overlay_number(self):
        block = block_from_backend({"type": "text", "background": {"overlay": 0.1}})
        assert block.background.overlay == 0.1

    def test_missing_show_fields_shows_all(self):
        block = block_from_backend({"type": "guestDetails"})
        assert isinstance(block, GuestDetailsBlock)
        assert all(block.show_fields.values())

    def test_unknown_block(self):
        block = block_from_backend({"id": "z", "type": "map"})
        assert isinstance(block, TextBlock) and block.body == "Unknown block type"


class TestValidate:

    def test_valid(self):
        assert validate_design(default_design())

    def test_needs_blocks_and_colours(self):
        assert not validate_design(RsvpDesign())
        design = default_design()
        design.accent_color = ""
        assert not validate_design(design)

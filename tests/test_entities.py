"""Tests for the persisted UI model and guide entities."""

from miniapp_guide.entities import ComposableInfo, Guide, GuideStep, MiniAppCodeIndex, ScreenInfo


def make_screen(session, name="SendScreen", app_id="app"):
    code_index = MiniAppCodeIndex(app_id=app_id)
    screen = ScreenInfo(name=name, source_file=f"{name}.kt")
    code_index.add_screen(screen)
    session.add(code_index)
    return screen


class TestSearchableText:
    def test_concatenation_order(self):
        element = ComposableInfo(
            type="Button",
            text="Send",
            semantic_hint="송금",
            onclick_code="{ send() }",
            composable_id="btn_send",
        )
        assert element.build_searchable_text("SendScreen") == "Send 송금 { send() } btn_send SendScreen"

    def test_missing_parts_skipped(self):
        element = ComposableInfo(type="Text", composable_id="title")
        assert element.build_searchable_text() == "title"

    def test_computed_on_insert(self, session_factory):
        session = session_factory()
        screen = make_screen(session)
        element = ComposableInfo(type="Button", text="Send", composable_id="btn")
        screen.add_composable(element)
        session.commit()

        stored = session.get(ComposableInfo, element.id)
        assert stored.searchable_text == "Send btn SendScreen"
        assert stored.app_id == "app"
        session.close()

    def test_recomputed_on_update(self, session_factory):
        session = session_factory()
        screen = make_screen(session)
        element = ComposableInfo(type="Button", text="Send")
        screen.add_composable(element)
        session.commit()

        element.text = "Transfer"
        session.commit()
        assert element.searchable_text == "Transfer SendScreen"
        session.close()

    def test_screen_rename_propagates(self, session_factory):
        session = session_factory()
        screen = make_screen(session)
        element = ComposableInfo(type="Button", text="Send")
        screen.add_composable(element)
        session.commit()

        screen.name = "TransferScreen"
        assert element.searchable_text == "Send TransferScreen"
        session.commit()

        stored = session.query(ComposableInfo).one()
        assert stored.searchable_text == "Send TransferScreen"
        assert stored.screen_name == "TransferScreen"
        session.close()


class TestGuideSteps:
    def test_add_step_numbers_densely(self):
        guide = Guide(guide_id="g1", app_id="app", user_query="how?")
        for text in ("first", "second", "third"):
            guide.add_step(GuideStep(instruction=text))

        assert [(s.step_number, s.instruction) for s in guide.steps] == [
            (1, "first"), (2, "second"), (3, "third"),
        ]
        assert all(s.guide_id == "g1" for s in guide.steps)

    def test_remove_step_renumbers(self):
        guide = Guide(guide_id="g1", app_id="app", user_query="how?")
        steps = [GuideStep(instruction=t) for t in ("a", "b", "c")]
        for step in steps:
            guide.add_step(step)

        guide.remove_step(steps[0])

        assert [(s.step_number, s.instruction) for s in guide.steps] == [(1, "b"), (2, "c")]

    def test_steps_cascade_on_delete(self, session_factory):
        session = session_factory()
        guide = Guide(guide_id="g1", app_id="app", user_query="how?")
        guide.add_step(GuideStep(instruction="tap"))
        session.add(guide)
        session.commit()

        session.delete(guide)
        session.commit()
        assert session.query(GuideStep).count() == 0
        session.close()

    def test_to_dict(self, session_factory):
        session = session_factory()
        guide = Guide(guide_id="g1", app_id="app", intent="Send", user_query="송금?")
        guide.add_step(GuideStep(instruction="tap", target_screen="Main", target_element="btn"))
        session.add(guide)
        session.commit()

        data = guide.to_dict()
        assert data["guideId"] == "g1"
        assert data["intent"] == "Send"
        assert data["createdAt"] is not None
        assert data["steps"] == [{
            "stepNumber": 1,
            "instruction": "tap",
            "targetScreen": "Main",
            "targetElement": "btn",
            "highlightBounds": None,
        }]
        session.close()

"""
tests/test_events.py — ChangeBus Tests
========================================
"""

from __future__ import annotations

from nsasa.engine.events import ChangeBus, EntityChanged, EntityKind


def _event(kind=EntityKind.POLL, entity_id=1, change="voted"):
    return EntityChanged(kind, entity_id, change)


class TestChangeBus:
    def test_subscriber_receives_its_kind_only(self):
        bus = ChangeBus()
        polls, content = [], []
        bus.subscribe(EntityKind.POLL, polls.append)
        bus.subscribe(EntityKind.CONTENT, content.append)

        bus.publish(_event())

        assert len(polls) == 1
        assert content == []

    def test_wildcard_subscriber_receives_everything(self):
        bus = ChangeBus()
        seen = []
        bus.subscribe(None, seen.append)
        bus.publish(_event(EntityKind.ACCOUNT))
        bus.publish(_event(EntityKind.CONTENT))
        assert [e.kind for e in seen] == [EntityKind.ACCOUNT, EntityKind.CONTENT]

    def test_failing_subscriber_does_not_block_others(self):
        bus = ChangeBus()
        seen = []

        def boom(event):
            raise RuntimeError("subscriber bug")

        bus.subscribe(EntityKind.POLL, boom)
        bus.subscribe(EntityKind.POLL, seen.append)
        bus.publish(_event())
        assert len(seen) == 1

    def test_unsubscribe(self):
        bus = ChangeBus()
        seen = []
        bus.subscribe(EntityKind.POLL, seen.append)
        bus.unsubscribe(EntityKind.POLL, seen.append)
        bus.publish(_event())
        assert seen == []

    def test_clear(self):
        bus = ChangeBus()
        seen = []
        bus.subscribe(None, seen.append)
        bus.clear()
        bus.publish(_event())
        assert seen == []

"""
Tests for SequenceService: per-name monotonic counters.
"""

from inventory_kernel.services.sequence_service import SequenceService


class TestNextValue:

    def test_first_value_is_one(self, session):
        seq = SequenceService(session)
        assert seq.next_value("test:first") == 1
        assert seq.next_value("test:first") == 2

    def test_seed_used_only_on_first_use(self, session):
        seq = SequenceService(session)
        calls = []

        def seed():
            calls.append(1)
            return 17

        assert seq.next_value("test:seeded", seed=seed) == 18
        assert seq.next_value("test:seeded", seed=seed) == 19
        assert len(calls) == 1

    def test_counters_are_independent(self, session):
        seq = SequenceService(session)
        seq.next_value("test:a")
        seq.next_value("test:a")
        assert seq.next_value("test:b") == 1

    def test_values_strictly_increase(self, session):
        seq = SequenceService(session)
        values = [seq.next_value("test:mono") for _ in range(20)]
        assert values == list(range(1, 21))


class TestAdvanceAndReset:

    def test_advance_moves_forward(self, session):
        seq = SequenceService(session)
        seq.next_value("test:adv")
        assert seq.advance_to("test:adv", 40) == 40
        assert seq.next_value("test:adv") == 41

    def test_advance_never_moves_backwards(self, session):
        seq = SequenceService(session)
        seq.advance_to("test:back", 10)
        assert seq.advance_to("test:back", 3) == 10
        assert seq.next_value("test:back") == 11

    def test_advance_creates_missing_counter(self, session):
        seq = SequenceService(session)
        assert seq.advance_to("test:new", 5) == 5
        assert seq.current_value("test:new") == 5

    def test_current_value_unknown_is_none(self, session):
        assert SequenceService(session).current_value("test:none") is None

    def test_reset(self, session):
        seq = SequenceService(session)
        seq.next_value("test:reset")
        seq.next_value("test:reset")
        seq.reset("test:reset")
        assert seq.next_value("test:reset") == 1

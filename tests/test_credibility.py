"""
Tests for the credibility policy.
"""

import os
import sys
import unittest

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sentinel.models.threat import ThreatStatus
from sentinel.schemas.threat import VoteTally
from sentinel.services.credibility import CredibilityPolicy


class TestScore(unittest.TestCase):
    """Tests for CredibilityPolicy.score."""

    def setUp(self):
        self.policy = CredibilityPolicy()

    def test_no_votes_is_neutral(self):
        self.assertEqual(self.policy.score(VoteTally()), 50)

    def test_three_confirm_one_deny(self):
        self.assertEqual(self.policy.score(VoteTally(confirm=3, deny=1)), 67)

    def test_single_votes(self):
        self.assertEqual(self.policy.score(VoteTally(confirm=1)), 67)
        self.assertEqual(self.policy.score(VoteTally(deny=1)), 33)
        self.assertEqual(self.policy.score(VoteTally(skeptical=1)), 40)

    def test_skeptical_weighs_less_than_deny(self):
        skeptical = self.policy.score(VoteTally(confirm=2, skeptical=2))
        deny = self.policy.score(VoteTally(confirm=2, deny=2))
        self.assertGreater(skeptical, deny)

    def test_bounds(self):
        self.assertLessEqual(self.policy.score(VoteTally(confirm=10000)), 100)
        self.assertGreaterEqual(self.policy.score(VoteTally(deny=10000)), 0)

    def test_monotonic(self):
        base = VoteTally(confirm=4, deny=4, skeptical=2)
        score = self.policy.score(base)
        self.assertGreaterEqual(self.policy.score(base.incremented("confirm")), score)
        self.assertLessEqual(self.policy.score(base.incremented("deny")), score)
        self.assertLessEqual(self.policy.score(base.incremented("skeptical")), score)

    def test_recomputable_from_counters(self):
        votes = VoteTally(confirm=7, deny=2, skeptical=3)
        self.assertEqual(self.policy.score(votes), self.policy.score(VoteTally(**votes.model_dump())))

    def test_from_settings(self):
        policy = CredibilityPolicy.from_settings()
        self.assertEqual(policy.score(VoteTally()), 50)


class TestNextStatus(unittest.TestCase):
    """Tests for CredibilityPolicy.next_status."""

    def setUp(self):
        self.policy = CredibilityPolicy()

    def test_too_few_votes_keeps_status(self):
        votes = VoteTally(deny=4)
        score = self.policy.score(votes)
        self.assertEqual(self.policy.next_status(ThreatStatus.ACTIVE, votes, score), ThreatStatus.ACTIVE)

    def test_low_score_moves_to_monitoring(self):
        votes = VoteTally(deny=5)
        score = self.policy.score(votes)
        self.assertEqual(score, 14)
        self.assertEqual(
            self.policy.next_status(ThreatStatus.ACTIVE, votes, score), ThreatStatus.MONITORING
        )

    def test_recovery_returns_to_active(self):
        votes = VoteTally(confirm=8, deny=5)
        score = self.policy.score(votes)
        self.assertEqual(score, 60)
        self.assertEqual(
            self.policy.next_status(ThreatStatus.MONITORING, votes, score), ThreatStatus.ACTIVE
        )

    def test_monitoring_between_thresholds_is_sticky(self):
        votes = VoteTally(confirm=7, deny=5)
        score = self.policy.score(votes)
        self.assertEqual(score, 57)
        self.assertEqual(
            self.policy.next_status(ThreatStatus.MONITORING, votes, score), ThreatStatus.MONITORING
        )

    def test_resolved_never_changes(self):
        for votes in (VoteTally(deny=50), VoteTally(confirm=50)):
            score = self.policy.score(votes)
            self.assertEqual(
                self.policy.next_status(ThreatStatus.RESOLVED, votes, score), ThreatStatus.RESOLVED
            )

    def test_accepts_plain_strings(self):
        votes = VoteTally(deny=6)
        self.assertEqual(
            self.policy.next_status("active", votes, self.policy.score(votes)),
            ThreatStatus.MONITORING,
        )


if __name__ == "__main__":
    unittest.main()

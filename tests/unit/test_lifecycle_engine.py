"""Unit tests for the paper lifecycle engine."""

import threading

import pytest

from confrev.core.errors import AuthorizationError, NotFoundError, ValidationError
from confrev.core.models import PaperStatus, ReviewStatus, Role
from confrev.lifecycle.engine import KeyedLocks, PaperLifecycleEngine, parse_decision


class TestSubmitPaper:
    """Tests for the submit transition."""

    def test_assigns_first_two_reviewers(self, repo, engine, author, conference, reviewers) -> None:
        paper = engine.submit_paper(conference.id, author.id, "Typed Pipelines", "/uploads/a.pdf")

        reviews = repo.list_reviews(paper_id=paper.id)
        assert len(reviews) == 2
        assert [r.reviewer_id for r in reviews] == [reviewers[0].id, reviewers[1].id]
        assert all(r.status == ReviewStatus.PENDING for r in reviews)
        assert all(r.feedback is None for r in reviews)
        assert paper.status == PaperStatus.UNDER_REVIEW
        assert repo.get_paper(paper.id).status == PaperStatus.UNDER_REVIEW
        assert paper.version == 1
        assert paper.file_url == "/uploads/a.pdf"

    def test_pool_order_follows_assignment_order(self, repo, engine, author, make_conference, reviewers) -> None:
        conf = make_conference([reviewers[2].id, reviewers[0].id, reviewers[1].id])
        paper = engine.submit_paper(conf.id, author.id, "Order Matters", "/uploads/b.pdf")
        assigned = [r.reviewer_id for r in repo.list_reviews(paper_id=paper.id)]
        assert assigned == [reviewers[2].id, reviewers[0].id]

    def test_single_reviewer_pool(self, repo, engine, author, make_conference, reviewers) -> None:
        conf = make_conference([reviewers[0].id])
        paper = engine.submit_paper(conf.id, author.id, "Solo", "/uploads/c.pdf")
        assert len(repo.list_reviews(paper_id=paper.id)) == 1
        assert paper.status == PaperStatus.UNDER_REVIEW

    def test_empty_pool_stays_submitted(self, repo, engine, author, make_conference) -> None:
        conf = make_conference([])
        paper = engine.submit_paper(conf.id, author.id, "Nobody Home", "/uploads/d.pdf")
        assert repo.list_reviews(paper_id=paper.id) == []
        assert paper.status == PaperStatus.SUBMITTED
        assert repo.get_paper(paper.id).status == PaperStatus.SUBMITTED

    def test_reviewers_per_paper_is_configurable(self, repo, author, conference) -> None:
        engine = PaperLifecycleEngine(repo, reviewers_per_paper=3)
        paper = engine.submit_paper(conference.id, author.id, "Three Eyes", "/uploads/e.pdf")
        assert len(repo.list_reviews(paper_id=paper.id)) == 3

    def test_unknown_conference(self, repo, engine, author) -> None:
        with pytest.raises(NotFoundError):
            engine.submit_paper("missing", author.id, "Lost", "/uploads/f.pdf")
        assert repo.list_papers() == []

    def test_non_author_cannot_submit(self, repo, engine, reviewers, conference) -> None:
        with pytest.raises(AuthorizationError):
            engine.submit_paper(conference.id, reviewers[0].id, "Sneaky", "/uploads/g.pdf")
        assert repo.list_papers() == []

    def test_unknown_user_cannot_submit(self, repo, engine, conference) -> None:
        with pytest.raises(AuthorizationError):
            engine.submit_paper(conference.id, "ghost", "Ghost Paper", "/uploads/h.pdf")

    @pytest.mark.parametrize("title,ref", [("", "/uploads/x.pdf"), ("   ", "/uploads/x.pdf"), ("Title", "")])
    def test_missing_fields(self, repo, engine, author, conference, title, ref) -> None:
        with pytest.raises(ValidationError):
            engine.submit_paper(conference.id, author.id, title, ref)
        assert repo.list_papers() == []

    def test_failed_assignment_rolls_back_paper(self, repo, engine, author, conference, monkeypatch) -> None:
        def broken_add_review(review):
            raise ValidationError("duplicate")

        monkeypatch.setattr(repo, "add_review", broken_add_review)
        with pytest.raises(ValidationError):
            engine.submit_paper(conference.id, author.id, "Half Done", "/uploads/i.pdf")
        assert repo.list_papers() == []


class TestUploadRevision:
    """Tests for the revise transition."""

    @pytest.fixture
    def paper(self, engine, author, conference):
        return engine.submit_paper(conference.id, author.id, "Draft", "/uploads/v1.pdf")

    def test_resets_reviews_and_bumps_version(self, repo, engine, author, paper) -> None:
        first, second = repo.list_reviews(paper_id=paper.id)
        engine.record_review_decision(first.id, first.reviewer_id, "ACCEPTED", "great")
        engine.record_review_decision(second.id, second.reviewer_id, "REVISION_REQUESTED", "fix figure 2")
        assert repo.get_paper(paper.id).status == PaperStatus.REVISION_REQUESTED

        revised = engine.upload_revision(paper.id, author.id, "/uploads/v2.pdf")

        assert revised.version == 2
        assert revised.file_url == "/uploads/v2.pdf"
        assert revised.status == PaperStatus.UNDER_REVIEW
        reviews = repo.list_reviews(paper_id=paper.id)
        assert {r.reviewer_id for r in reviews} == {first.reviewer_id, second.reviewer_id}
        assert all(r.status == ReviewStatus.PENDING for r in reviews)
        assert all(r.feedback is None for r in reviews)

    @pytest.mark.parametrize("decision", ["ACCEPTED", "REVISION_REQUESTED"])
    def test_returns_to_under_review_from_any_outcome(self, repo, engine, author, paper, decision) -> None:
        for review in repo.list_reviews(paper_id=paper.id):
            engine.record_review_decision(review.id, review.reviewer_id, decision)
        revised = engine.upload_revision(paper.id, author.id, "/uploads/v2.pdf")
        assert revised.status == PaperStatus.UNDER_REVIEW

    def test_version_increments_by_one_each_time(self, engine, author, paper) -> None:
        for expected in (2, 3, 4):
            assert engine.upload_revision(paper.id, author.id, f"/uploads/v{expected}.pdf").version == expected

    def test_revision_of_unreviewed_paper(self, repo, engine, author, make_conference) -> None:
        conf = make_conference([])
        paper = engine.submit_paper(conf.id, author.id, "Lonely", "/uploads/l1.pdf")
        revised = engine.upload_revision(paper.id, author.id, "/uploads/l2.pdf")
        assert revised.version == 2
        assert revised.status == PaperStatus.UNDER_REVIEW

    def test_other_author_is_rejected(self, repo, engine, other_author, paper) -> None:
        before = repo.get_paper(paper.id)
        with pytest.raises(AuthorizationError):
            engine.upload_revision(paper.id, other_author.id, "/uploads/evil.pdf")
        assert repo.get_paper(paper.id) == before

    def test_reviewer_is_rejected(self, repo, engine, reviewers, paper) -> None:
        with pytest.raises(AuthorizationError):
            engine.upload_revision(paper.id, reviewers[0].id, "/uploads/evil.pdf")
        assert repo.get_paper(paper.id).version == 1

    def test_unknown_paper(self, engine, author) -> None:
        with pytest.raises(NotFoundError):
            engine.upload_revision("missing", author.id, "/uploads/x.pdf")

    def test_missing_document(self, repo, engine, author, paper) -> None:
        with pytest.raises(ValidationError):
            engine.upload_revision(paper.id, author.id, "")
        assert repo.get_paper(paper.id).version == 1


class TestRecordReviewDecision:
    """Tests for the review-decision transition."""

    @pytest.fixture
    def paper(self, engine, author, conference):
        return engine.submit_paper(conference.id, author.id, "Under Test", "/uploads/p.pdf")

    def test_single_acceptance_keeps_under_review(self, repo, engine, paper) -> None:
        first, _ = repo.list_reviews(paper_id=paper.id)
        review = engine.record_review_decision(first.id, first.reviewer_id, "ACCEPTED", "nice")
        assert review.status == ReviewStatus.ACCEPTED
        assert review.feedback == "nice"
        assert repo.get_paper(paper.id).status == PaperStatus.UNDER_REVIEW

    def test_unanimous_acceptance(self, repo, engine, paper) -> None:
        for review in repo.list_reviews(paper_id=paper.id):
            engine.record_review_decision(review.id, review.reviewer_id, ReviewStatus.ACCEPTED)
        assert repo.get_paper(paper.id).status == PaperStatus.ACCEPTED

    def test_revision_request_wins(self, repo, engine, paper) -> None:
        first, second = repo.list_reviews(paper_id=paper.id)
        engine.record_review_decision(first.id, first.reviewer_id, "REVISION_REQUESTED", "more data")
        assert repo.get_paper(paper.id).status == PaperStatus.REVISION_REQUESTED
        engine.record_review_decision(second.id, second.reviewer_id, "ACCEPTED")
        assert repo.get_paper(paper.id).status == PaperStatus.REVISION_REQUESTED

    def test_changed_mind_recomputes_status(self, repo, engine, paper) -> None:
        first, second = repo.list_reviews(paper_id=paper.id)
        engine.record_review_decision(first.id, first.reviewer_id, "REVISION_REQUESTED")
        engine.record_review_decision(second.id, second.reviewer_id, "ACCEPTED")
        engine.record_review_decision(first.id, first.reviewer_id, "ACCEPTED")
        assert repo.get_paper(paper.id).status == PaperStatus.ACCEPTED

    def test_pending_is_not_a_decision(self, repo, engine, paper) -> None:
        first, _ = repo.list_reviews(paper_id=paper.id)
        with pytest.raises(ValidationError):
            engine.record_review_decision(first.id, first.reviewer_id, "PENDING", "hmm")
        stored = repo.get_review(first.id)
        assert stored.status == ReviewStatus.PENDING
        assert stored.feedback is None

    @pytest.mark.parametrize("decision", [None, "", "REJECTED", "accepted!"])
    def test_invalid_decisions(self, repo, engine, paper, decision) -> None:
        first, _ = repo.list_reviews(paper_id=paper.id)
        with pytest.raises(ValidationError):
            engine.record_review_decision(first.id, first.reviewer_id, decision)

    def test_unassigned_reviewer_is_rejected(self, repo, engine, paper, reviewers) -> None:
        first, _ = repo.list_reviews(paper_id=paper.id)
        outsider = reviewers[2]
        with pytest.raises(AuthorizationError):
            engine.record_review_decision(first.id, outsider.id, "ACCEPTED")
        assert repo.get_review(first.id).status == ReviewStatus.PENDING

    def test_author_cannot_review(self, repo, engine, paper, author) -> None:
        first, _ = repo.list_reviews(paper_id=paper.id)
        with pytest.raises(AuthorizationError):
            engine.record_review_decision(first.id, author.id, "ACCEPTED")

    def test_unknown_review(self, engine, reviewers) -> None:
        with pytest.raises(NotFoundError):
            engine.record_review_decision("missing", reviewers[0].id, "ACCEPTED")

    def test_concurrent_decisions_do_not_lose_updates(self, repo, make_user, make_conference, author) -> None:
        pool = [make_user(f"Rev{i}", Role.REVIEWER) for i in range(6)]
        conf = make_conference([u.id for u in pool])
        engine = PaperLifecycleEngine(repo, reviewers_per_paper=6)
        paper = engine.submit_paper(conf.id, author.id, "Crowded", "/uploads/crowd.pdf")
        reviews = repo.list_reviews(paper_id=paper.id)

        threads = [
            threading.Thread(
                target=engine.record_review_decision,
                args=(r.id, r.reviewer_id, "ACCEPTED"),
            )
            for r in reviews
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert repo.get_paper(paper.id).status == PaperStatus.ACCEPTED


class TestParseDecision:
    """Tests for parse_decision()."""

    def test_accepts_enum_and_string(self) -> None:
        assert parse_decision(ReviewStatus.ACCEPTED) == ReviewStatus.ACCEPTED
        assert parse_decision("REVISION_REQUESTED") == ReviewStatus.REVISION_REQUESTED

    def test_rejects_pending(self) -> None:
        with pytest.raises(ValidationError):
            parse_decision(ReviewStatus.PENDING)


class TestKeyedLocks:
    """Per-key locks are released once nobody uses them."""

    def test_nested_hold_on_same_key(self) -> None:
        locks = KeyedLocks()
        with locks.hold("p1"):
            with locks.hold("p1"):
                assert len(locks) == 1
            assert len(locks) == 1
        assert len(locks) == 0

    def test_entry_dropped_when_body_raises(self) -> None:
        locks = KeyedLocks()
        with pytest.raises(RuntimeError):
            with locks.hold("p1"):
                raise RuntimeError("boom")
        assert len(locks) == 0

    def test_contended_key_serializes_holders(self) -> None:
        locks = KeyedLocks()
        entered = threading.Event()
        release = threading.Event()
        order = []

        def first() -> None:
            with locks.hold("p1"):
                entered.set()
                release.wait(timeout=5)
                order.append("first")

        def second() -> None:
            entered.wait(timeout=5)
            with locks.hold("p1"):
                order.append("second")

        threads = [threading.Thread(target=first), threading.Thread(target=second)]
        for t in threads:
            t.start()
        entered.wait(timeout=5)
        release.set()
        for t in threads:
            t.join()

        assert order == ["first", "second"]
        assert len(locks) == 0

    def test_unknown_papers_leave_no_locks_behind(self, engine, author) -> None:
        for i in range(200):
            with pytest.raises(NotFoundError):
                engine.upload_revision(f"missing-{i}", author.id, "/uploads/x.pdf")
        assert len(engine._paper_locks) == 0

    def test_transitions_leave_no_locks_behind(self, repo, engine, author, conference) -> None:
        paper = engine.submit_paper(conference.id, author.id, "Tidy", "/uploads/tidy.pdf")
        for review in repo.list_reviews(paper_id=paper.id):
            engine.record_review_decision(review.id, review.reviewer_id, "ACCEPTED")
        engine.upload_revision(paper.id, author.id, "/uploads/tidy-v2.pdf")
        assert len(engine._paper_locks) == 0
        assert len(engine._conference_locks) == 0

"""
Tests for FAQ and FAQ answer endpoints.
"""
import pytest

from app.models import Faq, FaqAnswer

FAQS_URL = "/api/v1/faqs"


@pytest.fixture
def make_faq(db_session):
    def factory(
        author,
        question="How long does a screening take?",
        is_published=False,
        order=0,
    ):
        faq = Faq(
            question=question,
            is_published=is_published,
            order=order,
            created_by=author.id,
        )
        db_session.add(faq)
        db_session.commit()
        db_session.refresh(faq)
        return faq

    return factory


@pytest.fixture
def make_answer(db_session):
    def factory(
        faq,
        author,
        answer="Usually around fifteen minutes.",
        is_selected=False,
        order=0,
    ):
        row = FaqAnswer(
            faq_id=faq.id,
            answer=answer,
            is_selected=is_selected,
            order=order,
            created_by=author.id,
        )
        db_session.add(row)
        db_session.commit()
        db_session.refresh(row)
        return row

    return factory


class TestFaqCrud:
    def test_create_faq(self, client, admin_headers, admin_user):
        response = client.post(
            FAQS_URL,
            json={"question": "Who can take the tests?"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["isPublished"] is False
        assert data["createdBy"] == admin_user.id
        assert data["answers"] == []

    def test_create_short_question(self, client, admin_headers):
        response = client.post(FAQS_URL, json={"question": "Why?"}, headers=admin_headers)

        assert response.status_code == 422
        assert "question" in response.json()["errors"]

    def test_end_user_cannot_create(self, client, auth_headers):
        response = client.post(
            FAQS_URL, json={"question": "Who can take the tests?"}, headers=auth_headers
        )

        assert response.status_code == 403

    def test_admin_lists_own_faqs(
        self, client, admin_headers, admin_user, other_admin, make_faq
    ):
        mine = make_faq(admin_user)
        make_faq(other_admin)

        response = client.get(FAQS_URL, headers=admin_headers)

        assert [f["id"] for f in response.json()["data"]] == [mine.id]

    def test_superadmin_lists_all(self, client, superadmin_headers, admin_user, other_admin, make_faq):
        make_faq(admin_user)
        make_faq(other_admin)

        response = client.get(FAQS_URL, headers=superadmin_headers)

        assert len(response.json()["data"]) == 2

    def test_pending_lists_unpublished(self, client, superadmin_headers, admin_user, make_faq):
        draft = make_faq(admin_user)
        make_faq(admin_user, is_published=True)

        response = client.get(f"{FAQS_URL}/pending", headers=superadmin_headers)

        assert [f["id"] for f in response.json()["data"]] == [draft.id]

    def test_end_user_reads_published_only(
        self, client, auth_headers, admin_user, make_faq
    ):
        published = make_faq(admin_user, is_published=True)
        draft = make_faq(admin_user)

        assert client.get(f"{FAQS_URL}/{published.id}", headers=auth_headers).status_code == 200
        hidden = client.get(f"{FAQS_URL}/{draft.id}", headers=auth_headers)
        assert hidden.status_code == 403

    def test_admin_cannot_read_others_faq(
        self, client, other_admin_headers, admin_user, make_faq
    ):
        faq = make_faq(admin_user, is_published=True)

        response = client.get(f"{FAQS_URL}/{faq.id}", headers=other_admin_headers)

        assert response.status_code == 403
        assert response.json()["message"] == "You can only access your own FAQs"

    def test_missing_faq(self, client, admin_headers):
        response = client.get(f"{FAQS_URL}/9999", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "FAQ with ID 9999 not found"

    def test_update_faq(self, client, admin_headers, admin_user, make_faq):
        faq = make_faq(admin_user)

        response = client.put(
            f"{FAQS_URL}/{faq.id}",
            json={"question": "How long does one screening take?"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["question"] == "How long does one screening take?"

    def test_delete_faq_removes_answers(
        self, client, admin_headers, admin_user, make_faq, make_answer, db_session
    ):
        faq = make_faq(admin_user)
        make_answer(faq, admin_user)

        response = client.delete(f"{FAQS_URL}/{faq.id}", headers=admin_headers)

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.query(Faq).count() == 0
        assert db_session.query(FaqAnswer).count() == 0

    def test_publish_requires_superadmin(self, client, admin_headers, admin_user, make_faq):
        faq = make_faq(admin_user)

        response = client.put(
            f"{FAQS_URL}/{faq.id}/status", json={"isPublished": True}, headers=admin_headers
        )

        assert response.status_code == 403

    def test_publish(self, client, superadmin_headers, admin_user, make_faq):
        faq = make_faq(admin_user)

        response = client.put(
            f"{FAQS_URL}/{faq.id}/status",
            json={"isPublished": True},
            headers=superadmin_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "FAQ status changed to PUBLISHED successfully"
        assert body["data"]["isPublished"] is True


class TestPublicFaqs:
    def test_public_shows_selected_answer_in_order(
        self, client, admin_user, make_faq, make_answer
    ):
        second = make_faq(admin_user, question="Second question here?", is_published=True, order=2)
        first = make_faq(admin_user, question="First question here?", is_published=True, order=1)
        make_faq(admin_user, question="Draft question here?", order=0)
        make_answer(first, admin_user, answer="Not this candidate answer")
        make_answer(first, admin_user, answer="The chosen answer text", is_selected=True)

        response = client.get(f"{FAQS_URL}/public")

        assert response.status_code == 200
        data = response.json()["data"]
        assert [f["id"] for f in data] == [first.id, second.id]
        assert data[0]["answer"] == "The chosen answer text"
        assert data[1]["answer"] is None

    def test_publishing_invalidates_public_cache(
        self, client, superadmin_headers, admin_user, make_faq
    ):
        faq = make_faq(admin_user)
        assert client.get(f"{FAQS_URL}/public").json()["data"] == []

        client.put(
            f"{FAQS_URL}/{faq.id}/status",
            json={"isPublished": True},
            headers=superadmin_headers,
        )

        assert [f["id"] for f in client.get(f"{FAQS_URL}/public").json()["data"]] == [faq.id]


class TestOrdering:
    def test_reorder_faqs(self, client, superadmin_headers, admin_user, make_faq, db_session):
        a = make_faq(admin_user, question="Question alpha here?")
        b = make_faq(admin_user, question="Question bravo here?")

        response = client.put(
            f"{FAQS_URL}/order",
            json={"orderedFaqs": [{"id": a.id, "order": 5}, {"id": b.id, "order": 1}]},
            headers=superadmin_headers,
        )

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(Faq, a.id).order == 5
        assert db_session.get(Faq, b.id).order == 1

    def test_reorder_unknown_faq(self, client, superadmin_headers, admin_user, make_faq):
        a = make_faq(admin_user)

        response = client.put(
            f"{FAQS_URL}/order",
            json={"orderedFaqs": [{"id": a.id, "order": 1}, {"id": 777, "order": 2}]},
            headers=superadmin_headers,
        )

        assert response.status_code == 404
        assert response.json()["message"] == "FAQ with ID 777 not found"

    def test_reorder_answers(
        self, client, superadmin_headers, admin_user, make_faq, make_answer, db_session
    ):
        faq = make_faq(admin_user)
        first = make_answer(faq, admin_user, answer="First candidate answer", order=0)
        second = make_answer(faq, admin_user, answer="Second candidate answer", order=1)

        response = client.put(
            f"{FAQS_URL}/{faq.id}/answer-order",
            json={"orderedAnswers": [{"id": first.id, "order": 1}, {"id": second.id, "order": 0}]},
            headers=superadmin_headers,
        )

        assert response.status_code == 200
        listing = client.get(f"{FAQS_URL}/{faq.id}/answers", headers=superadmin_headers)
        assert [a["id"] for a in listing.json()["data"]] == [second.id, first.id]

    def test_reorder_answer_of_other_faq(
        self, client, superadmin_headers, admin_user, make_faq, make_answer
    ):
        faq = make_faq(admin_user)
        other = make_faq(admin_user, question="Another question here?")
        foreign = make_answer(other, admin_user)

        response = client.put(
            f"{FAQS_URL}/{faq.id}/answer-order",
            json={"orderedAnswers": [{"id": foreign.id, "order": 0}]},
            headers=superadmin_headers,
        )

        assert response.status_code == 404
        assert response.json()["message"] == "FAQ answer not found"


class TestAnswers:
    def test_create_answer_appends_order(
        self, client, admin_headers, admin_user, make_faq, make_answer
    ):
        faq = make_faq(admin_user)
        make_answer(faq, admin_user)

        response = client.post(
            f"{FAQS_URL}/answer",
            json={"faqId": faq.id, "answer": "Another candidate answer"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["order"] == 1
        assert data["isSelected"] is False

    def test_create_answer_unknown_faq(self, client, admin_headers):
        response = client.post(
            f"{FAQS_URL}/answer",
            json={"faqId": 4321, "answer": "Answer for nothing at all"},
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert response.json()["message"] == "FAQ with ID 4321 not found"

    def test_selecting_answer_clears_others(
        self, client, admin_headers, admin_user, make_faq, make_answer, db_session
    ):
        faq = make_faq(admin_user)
        previous = make_answer(faq, admin_user, answer="Previously selected answer", is_selected=True)
        candidate = make_answer(faq, admin_user, answer="Newly selected answer")

        response = client.put(
            f"{FAQS_URL}/answer/{candidate.id}",
            json={"isSelected": True},
            headers=admin_headers,
        )

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.get(FaqAnswer, candidate.id).is_selected is True
        assert db_session.get(FaqAnswer, previous.id).is_selected is False

    def test_admin_cannot_edit_others_answer(
        self, client, other_admin_headers, admin_user, make_faq, make_answer
    ):
        faq = make_faq(admin_user)
        answer = make_answer(faq, admin_user)

        response = client.put(
            f"{FAQS_URL}/answer/{answer.id}",
            json={"answer": "Overwritten answer text"},
            headers=other_admin_headers,
        )

        assert response.status_code == 403
        assert response.json()["message"] == "You can only modify your own answers"

    def test_delete_answer(
        self, client, admin_headers, admin_user, make_faq, make_answer, db_session
    ):
        faq = make_faq(admin_user)
        answer = make_answer(faq, admin_user)

        response = client.delete(f"{FAQS_URL}/answer/{answer.id}", headers=admin_headers)

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.query(FaqAnswer).count() == 0

    def test_delete_missing_answer(self, client, admin_headers):
        response = client.delete(f"{FAQS_URL}/answer/999", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "FAQ answer not found"

    def test_list_answers(self, client, admin_headers, admin_user, make_faq, make_answer):
        faq = make_faq(admin_user)
        make_answer(faq, admin_user)

        response = client.get(f"{FAQS_URL}/{faq.id}/answers", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["message"] == f"Answers for FAQ ID {faq.id} retrieved successfully"
        assert len(response.json()["data"]) == 1

import uuid
from collections import Counter

from testcraft.models import LearnerSubmission


def submit(client, test, answers, name="Ada Lovelace", email="ada@example.com"):
	payload = {
		"test_id": test.id,
		"learner_name": name,
		"learner_email": email,
		"answers": [{"question_id": q.id, "answer": a} for q, a in answers],
	}
	return client.post("/api/learner/submit", json=payload)


def test_delivery_strips_answers(client, make_test, make_question):
	test = make_test(access_code="ABC234")
	make_question(test, "mcq", "1", options=["a", "b", "c"])
	make_question(test, "short", "Paris")

	r = client.get("/api/learner/test/abc234")
	assert r.status_code == 200
	body = r.json()
	assert body["title"] == test.title
	assert len(body["questions"]) == 2
	for question in body["questions"]:
		assert "answer" not in question
	mcq = next(q for q in body["questions"] if q["type"] == "mcq")
	assert mcq["options"] == ["a", "b", "c"]
	assert "option_mapping" not in mcq


def test_delivery_shuffles_mcq_options(client, make_test, make_question):
	test = make_test(access_code="SHUF23", shuffle_answers=True)
	options = ["w", "x", "y", "z", "v", "u"]
	make_question(test, "mcq", "2", options=options)

	delivered = client.get("/api/learner/test/SHUF23").json()["questions"][0]
	assert Counter(delivered["options"]) == Counter(options)
	assert [options[i] for i in delivered["option_mapping"]] == delivered["options"]


def test_delivery_of_inactive_or_unknown_tests(client, make_test):
	make_test(access_code="PAUSE2", status="paused")
	assert client.get("/api/learner/test/PAUSE2").status_code == 404
	assert client.get("/api/learner/test/NOPE22").status_code == 404
	assert client.get("/api/learner/test/SHORT").status_code == 400


def test_submit_scores_against_pass_mark(client, make_test, make_question):
	test = make_test(pass_mark=60)
	question = make_question(test, "mcq", "1", options=["a", "b"])

	r = submit(client, test, [(question, "1")])
	assert r.status_code == 201
	body = r.json()
	assert body["score"] == 100
	assert body["passed"] is True
	assert body["correct_answers"] == 1
	assert body["total_questions"] == 1

	body = submit(client, test, [(question, "0")]).json()
	assert body["score"] == 0
	assert body["passed"] is False


def test_submit_mixed_types(client, make_test, make_question):
	test = make_test(pass_mark=75)
	mcq = make_question(test, "mcq", "0", options=["a", "b"])
	select = make_question(test, "select", "[0, 2]", options=["a", "b", "c"])
	tf = make_question(test, "true_false", "true")
	gap = make_question(test, "fill_gap", "Oxygen")

	body = submit(client, test, [(mcq, 0), (select, [2, 0]), (tf, "TRUE"), (gap, " oxygen ")]).json()
	assert body["score"] == 100

	body = submit(client, test, [(mcq, 0), (select, [0, 1, 2]), (tf, "TRUE"), (gap, "oxygen")]).json()
	assert body["score"] == 75
	assert body["passed"] is True


def test_submit_with_no_answers(client, make_test, make_question):
	test = make_test()
	make_question(test, "mcq", "0", options=["a", "b"])
	body = submit(client, test, []).json()
	assert body["score"] == 0
	assert body["total_questions"] == 0
	assert body["passed"] is False


def test_submit_to_unavailable_test(client, make_test):
	paused = make_test(status="paused")
	r = submit(client, paused, [])
	assert r.status_code == 404
	assert r.json() == {"errors": [{"msg": "Test not found or not available"}]}


def test_submit_validation(client, make_test):
	test = make_test()
	r = submit(client, test, [], email="nope")
	assert r.status_code == 400
	assert r.json()["errors"][0]["param"] == "learner_email"

	payload = {"test_id": test.id, "learner_name": "Ada", "learner_email": "ada@example.com", "answers": [{"question_id": "x", "answer": "1"}]}
	assert client.post("/api/learner/submit", json=payload).status_code == 400


def test_submission_is_persisted(client, db_session, make_test, make_question):
	test = make_test()
	question = make_question(test, "short", "Paris")
	submission_id = submit(client, test, [(question, "paris")]).json()["submission_id"]

	db_session.expire_all()
	row = db_session.get(LearnerSubmission, submission_id)
	assert row.learner_id == "Ada Lovelace <ada@example.com>"
	assert row.answers == [{"question_id": question.id, "learner_answer": "paris", "correct": True}]


def test_result_reconstruction(client, make_test, make_question):
	test = make_test(result_text="See you next week")
	question = make_question(test, "mcq", "1", options=["a", "b"], content="Pick b")
	stray_id = str(uuid.uuid4())
	payload = {
		"test_id": test.id,
		"learner_name": "Ada Lovelace",
		"learner_email": "ada@example.com",
		"answers": [{"question_id": question.id, "answer": "1"}, {"question_id": stray_id, "answer": "x"}],
	}
	submission_id = client.post("/api/learner/submit", json=payload).json()["submission_id"]

	r = client.get(f"/api/learner/result/{submission_id}")
	assert r.status_code == 200
	result = r.json()
	assert result["learner_name"] == "Ada Lovelace"
	assert result["learner_email"] == "ada@example.com"
	assert result["score"] == 50
	assert result["result_text"] == "See you next week"
	first, second = result["answers"]
	assert first["question_content"] == "Pick b"
	assert first["correct_answer"] == "1"
	assert first["options"] == ["a", "b"]
	assert second == {"question_id": stray_id, "learner_answer": "x", "correct": False}


def test_result_with_legacy_learner_id(client, db_session, make_test):
	test = make_test()
	row = LearnerSubmission(test_id=test.id, learner_id="anonymous", answers=[], score=0.0, passed=False)
	db_session.add(row)
	db_session.commit()

	result = client.get(f"/api/learner/result/{row.id}").json()
	assert result["learner_name"] == "anonymous"
	assert result["learner_email"] == ""


def test_unknown_result(client):
	assert client.get(f"/api/learner/result/{uuid.uuid4()}").status_code == 404

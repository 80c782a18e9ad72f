SIGNUP = {"name": "Grace", "email": "grace@example.com", "password": "Sup3r@secret"}


def test_health(client):
	r = client.get("/api/health")
	assert r.status_code == 200
	assert r.json()["status"] == "ok"


def test_signup_login_user_logout(client):
	r = client.post("/api/auth/signup", json=SIGNUP)
	assert r.status_code == 201
	body = r.json()
	assert body["email"] == "grace@example.com"
	assert "password_hash" not in body

	r = client.post("/api/auth/login", json={"email": "Grace@Example.com", "password": SIGNUP["password"]})
	assert r.status_code == 200
	token = r.json()["access_token"]
	headers = {"Authorization": f"Bearer {token}"}

	r = client.get("/api/auth/user", headers=headers)
	assert r.status_code == 200
	assert r.json()["name"] == "Grace"

	r = client.post("/api/auth/logout", headers=headers)
	assert r.status_code == 200

	# The token is unexpired but its session is gone
	r = client.get("/api/auth/user", headers=headers)
	assert r.status_code == 401
	assert r.json()["errors"][0]["msg"] == "Invalid or expired session"


def test_signup_rejects_duplicates(client):
	assert client.post("/api/auth/signup", json=SIGNUP).status_code == 201
	r = client.post("/api/auth/signup", json=SIGNUP)
	assert r.status_code == 400
	assert r.json() == {"errors": [{"msg": "User already exists"}]}


def test_signup_password_rules(client):
	weak = dict(SIGNUP, password="alllowercase1!")
	r = client.post("/api/auth/signup", json=weak)
	assert r.status_code == 400
	assert r.json()["errors"][0]["param"] == "password"

	with_name = dict(SIGNUP, password="Grace@2024x")
	r = client.post("/api/auth/signup", json=with_name)
	assert r.status_code == 400
	assert r.json()["errors"][0]["msg"] == "Password must not contain your name"


def test_signup_requires_valid_email(client):
	r = client.post("/api/auth/signup", json=dict(SIGNUP, email="not-an-email"))
	assert r.status_code == 400
	assert r.json()["errors"][0]["msg"] == "Please include a valid email"


def test_login_with_bad_password(client):
	client.post("/api/auth/signup", json=SIGNUP)
	r = client.post("/api/auth/login", json={"email": SIGNUP["email"], "password": "Wrong@pass1"})
	assert r.status_code == 400
	assert r.json()["errors"][0]["msg"] == "Invalid credentials"


def test_protected_routes_need_a_token(client):
	assert client.get("/api/tests").status_code == 401
	r = client.get("/api/tests", headers={"Authorization": "Bearer garbage"})
	assert r.status_code == 401

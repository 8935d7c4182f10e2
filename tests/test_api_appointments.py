from datetime import timedelta


def _book(client, headers, **overrides):
    payload = {
        "client_id": "client-1",
        "client_name": "Nimal Perera",
        "lawyer_id": "lawyer-1",
        "lawyer_name": "Anjali Fernando",
        "consultation_fee": 5000,
    }
    payload.update(overrides)
    return client.post("/appointments", json=payload, headers=headers)


class TestAppointmentEndpoints:
    def test_missing_actor_headers(self, client) -> None:
        resp = client.get("/appointments")
        assert resp.status_code == 401
        assert resp.json()["code"] == "unauthorized"

    def test_unknown_role(self, client) -> None:
        resp = client.get(
            "/appointments", headers={"X-Actor-Id": "x", "X-Actor-Role": "judge"}
        )
        assert resp.status_code == 401

    def test_book(self, client, client_headers) -> None:
        resp = _book(client, client_headers)
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "pending_approval"
        assert data["approval_deadline"] is not None

    def test_book_validation_error(self, client, client_headers) -> None:
        resp = _book(client, client_headers, consultation_fee=0)
        assert resp.status_code == 422
        assert resp.json()["code"] == "validation_error"

    def test_book_for_other_client_forbidden(self, client, client_headers) -> None:
        resp = _book(client, client_headers, client_id="client-2")
        assert resp.status_code == 403
        assert resp.json()["code"] == "permission_denied"

    def test_full_booking_flow(
        self, client, client_headers, lawyer_headers
    ) -> None:
        appointment_id = _book(client, client_headers).json()["id"]

        resp = client.post(
            f"/appointments/{appointment_id}/approve", headers=lawyer_headers
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "approved_awaiting_payment"

        payments = client.get(
            f"/payments?appointment_id={appointment_id}", headers=client_headers
        ).json()
        assert payments["count"] == 1
        payment_id = payments["items"][0]["id"]

        resp = client.post(f"/payments/{payment_id}/confirm", headers=client_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "success"

        resp = client.get(f"/appointments/{appointment_id}", headers=client_headers)
        assert resp.json()["status"] == "confirmed"

    def test_approve_twice_conflict(
        self, client, client_headers, lawyer_headers
    ) -> None:
        appointment_id = _book(client, client_headers).json()["id"]
        client.post(f"/appointments/{appointment_id}/approve", headers=lawyer_headers)
        resp = client.post(
            f"/appointments/{appointment_id}/approve", headers=lawyer_headers
        )
        assert resp.status_code == 409
        body = resp.json()
        assert body["code"] == "invalid_transition"
        assert body["details"]["current"] == "approved_awaiting_payment"

    def test_approve_after_deadline(
        self, client, time_controller, client_headers, lawyer_headers
    ) -> None:
        appointment_id = _book(client, client_headers).json()["id"]
        time_controller.advance(timedelta(hours=24))
        resp = client.post(
            f"/appointments/{appointment_id}/approve", headers=lawyer_headers
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "deadline_passed"

    def test_decline_with_reason(self, client, client_headers, lawyer_headers) -> None:
        appointment_id = _book(client, client_headers).json()["id"]
        resp = client.post(
            f"/api/v1/appointments/{appointment_id}/decline",
            json={"reason": "Conflict of interest"},
            headers=lawyer_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["decline_reason"] == "Conflict of interest"

    def test_get_not_found(self, client, client_headers) -> None:
        resp = client.get("/appointments/apt-missing", headers=client_headers)
        assert resp.status_code == 404
        assert resp.json()["details"] == {"entity": "Appointment", "id": "apt-missing"}

    def test_list_invalid_order_by(self, client, client_headers) -> None:
        resp = client.get("/appointments?order_by=fee", headers=client_headers)
        assert resp.status_code == 400

"""Tests for the Django admin registrations.

Run with: pytest tests/test_admin.py -v
"""

import pytest

from registrations import models


@pytest.mark.django_db
class TestRegistrationAdmin:
    """Registrations are read-only records in the admin."""

    def test_add_page_is_forbidden(self, admin_client):
        response = admin_client.get("/admin/registrations/registration/add/")
        assert response.status_code == 403

    def test_add_post_creates_nothing(self, admin_client, make_event):
        event = make_event()
        response = admin_client.post(
            "/admin/registrations/registration/add/",
            {"event": str(event.id), "registrant_name": "Ana", "registrant_email": "a@x.io"},
        )
        assert response.status_code == 403
        assert not models.Registration.objects.exists()

    def test_change_form_cannot_move_registration(self, admin_client, priced_registration):
        """The event and the number are not form fields."""
        url = f"/admin/registrations/registration/{priced_registration.id.value}/change/"
        response = admin_client.get(url)

        assert response.status_code == 200
        form_fields = response.context["adminform"].form.fields
        assert "event" not in form_fields
        assert "registration_number" not in form_fields
        assert "registrant_email" not in form_fields
        assert "registrant_name" in form_fields


@pytest.mark.django_db
class TestPaymentAdmin:
    def test_add_page_is_forbidden(self, admin_client):
        response = admin_client.get("/admin/registrations/payment/add/")
        assert response.status_code == 403

    def test_registration_page_has_no_payment_add_rows(self, admin_client, priced_registration):
        url = f"/admin/registrations/registration/{priced_registration.id.value}/change/"
        response = admin_client.get(url)

        inline = response.context["inline_admin_formsets"][0]
        assert inline.formset.model is models.Payment
        assert inline.has_add_permission is False

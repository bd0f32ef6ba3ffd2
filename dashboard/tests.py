from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from records.models import ActivityLog


class DashboardAccessSmokeTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.staff = User.objects.create_user("staff", password="pass12345", is_staff=True)
        self.user = User.objects.create_user("user", password="pass12345", is_staff=False)
        self.protected_urls = [
            reverse("dashboard:home"),
            reverse("dashboard:patient_create"),
            reverse("dashboard:appointments"),
            reverse("dashboard:appointment_form"),
            reverse("dashboard:activity_log"),
            reverse("dashboard:analytics"),
            reverse("dashboard:analytics_data"),
        ]

    def test_protected_pages_require_login(self):
        for url in self.protected_urls:
            response = self.client.get(url)
            self.assertEqual(response.status_code, 302)
            self.assertIn(reverse("dashboard:login"), response.url)

    def test_non_staff_is_rejected(self):
        self.client.login(username="user", password="pass12345")
        for url in self.protected_urls:
            response = self.client.get(url)
            self.assertEqual(response.status_code, 302)
            self.assertIn(reverse("dashboard:login"), response.url)

    def test_staff_can_access(self):
        self.client.login(username="staff", password="pass12345")
        for url in self.protected_urls:
            response = self.client.get(url)
            self.assertEqual(response.status_code, 200)

    def test_session_ends_after_logout(self):
        self.client.login(username="staff", password="pass12345")
        self.client.post(reverse("dashboard:logout"))

        response = self.client.get(reverse("dashboard:home"))
        self.assertEqual(response.status_code, 302)


class LoginTests(TestCase):
    def setUp(self):
        self.staff = get_user_model().objects.create_user("staff", password="pass12345", is_staff=True)

    def test_invalid_credentials_are_rejected(self):
        for username, password in (("staff", "wrong"), ("nobody", "pass12345"), ("", "")):
            response = self.client.post(reverse("dashboard:login"), {
                "username": username,
                "password": password,
            })
            self.assertEqual(response.status_code, 200)
            self.assertNotIn("_auth_user_id", self.client.session)
        self.assertFalse(ActivityLog.objects.filter(action=ActivityLog.ACTION_LOGIN).exists())

    def test_login_is_recorded_and_session_is_browser_only(self):
        response = self.client.post(reverse("dashboard:login"), {
            "username": "staff",
            "password": "pass12345",
        })
        self.assertRedirects(response, reverse("dashboard:home"))
        self.assertTrue(self.client.session.get_expire_at_browser_close())

        entry = ActivityLog.objects.get(action=ActivityLog.ACTION_LOGIN)
        self.assertEqual(entry.username, "staff")
        self.assertEqual(entry.user, self.staff)

    def test_remember_me_keeps_session(self):
        self.client.post(reverse("dashboard:login"), {
            "username": "staff",
            "password": "pass12345",
            "remember": "on",
        })
        self.assertFalse(self.client.session.get_expire_at_browser_close())
        self.assertEqual(self.client.session.get_expiry_age(), 1209600)

from django.test import TestCase
from django.contrib.auth.models import User
from rest_framework import status

"""
    Test Script für die Token generierung und für das neue Ausstellen von Access Tokens.
    Ohne Access Token sind die Kauf-Endpunkte nicht erreichbar.
"""


class TokenTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='testUser', password='testPassword')
        response = self.client.post("/api/elearning/token/", {"username": "testUser", "password": "testPassword"})
        self.body = response.json()

    def test_token_pair_issued(self):
        self.assertIn("access", self.body)
        self.assertIn("refresh", self.body)

    def test_wrong_password(self):
        response = self.client.post("/api/elearning/token/", {"username": "testUser", "password": "falsch"})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token_success(self):
        response = self.client.post("/api/elearning/token/refresh/", {"refresh": self.body["refresh"]})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.json())

    def test_refresh_token_failure(self):
        response = self.client.post("/api/elearning/token/refresh/", {"refresh": "bad token"})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token_missing(self):
        response = self.client.post("/api/elearning/token/refresh/")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_access_token_opens_order_list(self):
        response = self.client.get(
            "/api/elearning/payments/courses/mine/",
            HTTP_AUTHORIZATION=f"Bearer {self.body['access']}",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["total"], 0)

"""Fake Supabase ``/auth/v1`` API served through httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any

import httpx

from web.auth.provider import SupabaseAuthProvider

SUPABASE_URL = "https://project.supabase.test"
ANON_KEY = "anon-key"


class FakeSupabase:
    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        # refresh token -> session returned by /token?grant_type=refresh_token
        self.sessions: dict[str, dict[str, Any]] = {}
        self.magic_link_status = 200
        self.unreachable = False
        self.requests: list[httpx.Request] = []

    def add_user(self, access_token: str, email: str) -> dict[str, Any]:
        user = {"id": f"user-{len(self.users) + 1}", "email": email}
        self.users[access_token] = user
        return user

    def add_refresh(self, refresh_token: str, access_token: str, email: str) -> None:
        user = self.add_user(access_token, email)
        self.sessions[refresh_token] = {
            "access_token": access_token,
            "refresh_token": f"{refresh_token}-next",
            "user": user,
        }

    def provider(self) -> SupabaseAuthProvider:
        return SupabaseAuthProvider(SUPABASE_URL, ANON_KEY, transport=httpx.MockTransport(self.handle))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        if request.headers.get("apikey") != ANON_KEY:
            return httpx.Response(401, json={"msg": "No API key found in request"})

        path = request.url.path
        if path == "/auth/v1/user":
            token = request.headers.get("Authorization", "").removeprefix("Bearer ")
            user = self.users.get(token)
            if user is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json=user)
        if path == "/auth/v1/token" and request.url.params.get("grant_type") == "refresh_token":
            session = self.sessions.get(json.loads(request.content)["refresh_token"])
            if session is None:
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(200, json=session)
        if path == "/auth/v1/magiclink":
            return httpx.Response(self.magic_link_status, json={})
        return httpx.Response(404)

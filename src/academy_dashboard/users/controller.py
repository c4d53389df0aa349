from __future__ import annotations

from flask import Flask, redirect, request, session, url_for

from ..common.web import current_actor, json_endpoint, ok, payload
from ..container import Container

LOGIN_PATH = "/auth/login"
HOME_PATH = "/dashboard/admin"


def register(app: Flask, container: Container) -> None:
    @app.before_request
    def session_gate():
        signed_in = "user_id" in session
        if request.path.startswith("/dashboard") and not signed_in:
            return redirect(url_for("login"))
        if request.path == LOGIN_PATH and signed_in:
            return redirect(HOME_PATH)
        return None

    @app.route(LOGIN_PATH, methods=["GET", "POST"], endpoint="login")
    @json_endpoint
    def login():
        if request.method == "GET":
            return ok(message="Sign in with username and password")

        body = payload()
        s_user = container.auth_service.authenticate(body.get("username", ""), body.get("password", ""))

        session.clear()
        session.permanent = True
        session["user_id"] = s_user.user_id
        session["tenant_id"] = s_user.tenant_id
        session["role"] = s_user.role.value
        session["name"] = s_user.name
        return ok(s_user, message="Signed in")

    @app.route("/auth/logout", methods=["POST", "GET"], endpoint="logout")
    def logout():
        session.clear()
        return redirect(url_for("login"))

    @app.route(HOME_PATH, endpoint="dashboard_admin")
    @json_endpoint
    def dashboard_admin():
        actor = current_actor(container.auth_service)
        return ok({"user_id": actor.user_id, "tenant_id": actor.tenant_id, "role": actor.role, "name": session.get("name")})

    @app.route("/dashboard/teachers", endpoint="list_teachers")
    @json_endpoint
    def list_teachers():
        actor = current_actor(container.auth_service)
        teachers = container.user_service.list_teachers(actor)
        return ok(
            [
                {"id": t.profile_id, "name": t.label, "color": t.calendar_color}
                for t in teachers
            ]
        )

"""Authentication routes shared by the session and OAuth deployments."""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, make_response, render_template, request

from core.auth_gate import encode_session_marker
from core.records import USERS, collections_for
from web.context import current_gate, current_settings, json_body, record_service

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/api/auth/login")
def login():
    payload = json_body()
    email = str(payload.get("email") or "")
    password = str(payload.get("password") or "")
    gate = current_gate()
    user = gate.login(email, password, lambda: record_service().list(USERS.name))

    response = jsonify({"success": True, "user": user})
    response.set_cookie(gate.cookie_name, encode_session_marker(user), **gate.cookie_options())
    return response


@auth_bp.get("/api/auth/url")
def authorization_url():
    return jsonify({"url": current_gate().authorization_url()})


@auth_bp.get("/auth/callback")
def oauth_callback():
    gate = current_gate()
    tokens = gate.handle_callback(request.args.get("code", ""))
    response = make_response(render_template("oauth_callback.html"))
    response.set_cookie(gate.cookie_name, tokens, **gate.cookie_options())
    logger.info("Stored OAuth tokens for a new session")
    return response


@auth_bp.get("/api/auth/status")
def status():
    names = collections_for(current_settings().uses_passwords).keys()
    return jsonify(current_gate().status(request.cookies, names))


@auth_bp.post("/api/auth/logout")
def logout():
    gate = current_gate()
    options = gate.cookie_options()
    response = jsonify({"success": True})
    response.delete_cookie(gate.cookie_name, secure=options["secure"], samesite=options["samesite"])
    return response

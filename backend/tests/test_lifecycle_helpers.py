"""Reusable test helpers for driving the transfer lifecycle over HTTP.

Patterns unified:
 - Auth header creation through /iam/auth/login (claims come from the real role store).
 - Transition sequencing with assertion helpers.
"""
from __future__ import annotations
from typing import Dict, Optional


def login_headers(client, username: str, password: str = 'pw') -> Dict[str, str]:
    resp = client.post('/iam/auth/login', json={'username': username, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    return {'Authorization': f"Bearer {resp.get_json()['access_token']}"}


def assert_transition(client, url: str, headers: Dict[str, str], expected_status: int,
                      expected_body_value: Optional[str] = None, json: Optional[dict] = None):
    resp = client.post(url, headers=headers, json=json)
    assert resp.status_code == expected_status, resp.get_json()
    if expected_status < 400 and expected_body_value is not None:
        assert resp.get_json()['status'] == expected_body_value
    return resp


def create_transfer_and_assert(client, payload: dict, headers: Dict[str, str]):
    resp = client.post('/transfers/', json=payload, headers=headers)
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body['status'] == 'Draft'
    assert resp.headers['ETag'] == f'"{body["version"]}"'
    return body


__all__ = ['login_headers', 'assert_transition', 'create_transfer_and_assert']

"""Tests for logging redaction, request ids and metric path labels."""

import uuid

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from docshare.observability import request_id_ctx
from docshare.observability.logging import _redact_secrets
from docshare.observability.middleware import (
    RequestIdMiddleware,
    metric_path,
)


@pytest.fixture
def client():
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get('/echo')
    async def echo(request: Request):
        return {
            'request_id': request.state.request_id,
            'context_id': request_id_ctx.get(),
        }

    return TestClient(app)


def test_request_id_generated(client):
    response = client.get('/echo')
    data = response.json()
    assert data['request_id']
    assert response.headers['X-Request-ID'] == data['request_id']
    assert data['context_id'] == data['request_id']


def test_request_id_from_header(client):
    rid = str(uuid.uuid4())
    response = client.get('/echo', headers={'X-Request-ID': rid})
    assert response.json()['request_id'] == rid
    assert response.headers['X-Request-ID'] == rid


def test_malformed_request_id_replaced(client):
    response = client.get('/echo', headers={'X-Request-ID': 'bad id!'})
    assert response.headers['X-Request-ID'] != 'bad id!'


def test_secrets_redacted():
    event = _redact_secrets(None, 'info', {
        'event': 'login_failed',
        'username': 'alice',
        'password': 'pw1',
        'token': 'abc',
    })
    assert event['username'] == 'alice'
    assert event['password'] == '<redacted>'
    assert event['token'] == '<redacted>'


@pytest.mark.parametrize('path,expected', [
    ('/files/doc_123/rename', '/files/{doc_id}/rename'),
    ('/files/doc_123', '/files/{doc_id}'),
    ('/uploads/abc-report.pdf', '/uploads/{blob}'),
    ('/files', '/files'),
    ('/shared', '/shared'),
])
def test_metric_path_labels(path, expected):
    assert metric_path(path) == expected

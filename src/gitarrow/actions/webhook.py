# actions/webhook.py
from __future__ import annotations

import http.client
import json
import time
import urllib.error
import urllib.request
from typing import Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode

from .. import settings
from ..envs import EnvironmentScope
from ..errors import HttpError
from ..model import ExecutionOutcome, Workspace
from ..schema import WebHookAction, WebHookBody
from ..templates import render, render_data
from ..ui.console import format_duration, get_console

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"


def encode_body(
    body: Optional[WebHookBody],
    env: Mapping[str, str],
) -> Tuple[Optional[bytes], Optional[str]]:
    """Rendered request payload and its content type; (None, None) without a body."""
    if body is None:
        return None, None
    if body.form_data is not None:
        pairs = {k: render(v, env) for k, v in body.form_data.items()}
        return urlencode(pairs).encode("utf-8"), FORM_CONTENT_TYPE
    payload = render_data(body.json_data, env)
    return json.dumps(payload).encode("utf-8"), JSON_CONTENT_TYPE


def build_request(action: WebHookAction, env: Mapping[str, str]) -> urllib.request.Request:
    http = action.http
    method = render(http.method, env).upper()
    url = render(http.url, env)

    headers: Dict[str, str] = {"User-Agent": settings.USER_AGENT}
    for k, v in http.headers.items():
        headers[k] = render(v, env)

    data, content_type = encode_body(http.body, env)
    if content_type:
        headers["Content-Type"] = content_type

    return urllib.request.Request(url, data=data, headers=headers, method=method)


def _send(req: urllib.request.Request, timeout: float) -> Tuple[int, str]:
    try:
        with urllib.request.urlopen(req, timeout=timeout) as response:
            return response.status, response.read().decode("utf-8", errors="replace")
    except urllib.error.HTTPError as e:
        body = e.read().decode("utf-8", errors="replace") if e.fp else ""
        return e.code, body
    except urllib.error.URLError as e:
        raise HttpError(status=None, body=str(e.reason), url=req.full_url)
    except TimeoutError:
        raise HttpError(status=None, body=f"timed out after {timeout}s", url=req.full_url)
    except (http.client.HTTPException, OSError) as e:
        # the connection broke while reading the response
        raise HttpError(status=None, body=str(e) or type(e).__name__, url=req.full_url)


def run_webhook(
    action: WebHookAction,
    workspace: Workspace,
    scope: EnvironmentScope,
) -> ExecutionOutcome:
    """
    Send exactly one HTTP request.

    Raises:
        HttpError: the server answered >= 400 or could not be reached.
    """
    console = get_console()
    env = action.scope(workspace.path).inherit(scope).build_environment()
    try:
        req = build_request(action, env)
    except ValueError as e:
        # urllib rejects URLs without a scheme or host
        raise HttpError(status=None, body=str(e), url=render(action.http.url, env))
    console.print_output(f"{req.get_method()} {req.full_url}")

    start = time.monotonic()
    status, body = _send(req, action.http.timeout)
    duration = time.monotonic() - start
    console.print_output(f"({format_duration(duration)}) {status}: {body}")

    if status >= 400:
        raise HttpError(status=status, body=body, url=req.full_url)

    return ExecutionOutcome(
        pipeline="",
        action=action.name,
        success=True,
        message=f"{req.get_method()} {req.full_url} -> {status}",
        duration=duration,
        status=status,
    )

#!/usr/bin/env python3
"""Submit an agent report to the Mission Control dashboard API."""
import argparse
import json
import os
import urllib.error
import urllib.request

REPORT_TYPES = ("progress", "completion", "question", "error")


def _post_json(url: str, payload: dict) -> dict:
    data = json.dumps(payload).encode("utf-8")
    req = urllib.request.Request(
        url,
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    try:
        with urllib.request.urlopen(req) as resp:
            body = resp.read().decode("utf-8")
            return json.loads(body) if body else {}
    except urllib.error.HTTPError as e:
        body = e.read().decode("utf-8")
        raise SystemExit(f"Report API error ({e.code}): {body}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Submit a report to Mission Control.")
    parser.add_argument("--agent", required=True, help="Reporting agent id")
    parser.add_argument("--type", required=True, choices=REPORT_TYPES, help="Report type")
    parser.add_argument("--title", required=True, help="Short summary")
    parser.add_argument("--content", help="Report body")
    parser.add_argument("--content-file", help="Read the report body from a file")
    parser.add_argument("--task", help="Task id the report refers to")
    parser.add_argument("--dashboard-url", help="Dashboard base URL (default from DASHBOARD_URL)")
    return parser


def build_payload(args: argparse.Namespace) -> dict:
    content = args.content
    if args.content_file:
        with open(args.content_file, encoding="utf-8") as f:
            content = f.read()

    payload = {
        "agent_id": args.agent,
        "type": args.type,
        "title": args.title,
    }
    if content:
        payload["content"] = content
    if args.task:
        payload["task_id"] = args.task
    return payload


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    dashboard_url = args.dashboard_url or os.getenv("DASHBOARD_URL") or "http://localhost:8080"
    endpoint = dashboard_url.rstrip("/") + "/api/reports"

    response = _post_json(endpoint, build_payload(args))
    print(json.dumps(response, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

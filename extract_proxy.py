#!/usr/bin/env python3
"""
Extraction proxy: forwards a URL to the Deepseek extract API and relays the
JSON response. Stateless; no retries, caching or timeout override.
"""

import argparse
import logging
import os

import requests
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

load_dotenv()

logger = logging.getLogger(__name__)

EXTRACT_API_URL = os.getenv("EXTRACT_API_URL", "https://api.deepseek.com/v1/extract")

app = FastAPI(title="Profile Extraction Proxy")


class ExtractRequest(BaseModel):
    """Extraction request body."""
    url: str


def get_api_key():
    """Read the extraction service key at request time."""
    return os.getenv("DEEPSEEK_API_KEY")


@app.post("/api/extract")
def extract(payload: ExtractRequest):
    api_key = get_api_key()
    if not api_key:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "API key not configured"},
        )

    try:
        upstream = requests.get(
            EXTRACT_API_URL,
            params={"url": payload.url},
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )
    except requests.RequestException as e:
        logger.error(f"Extraction request failed for {payload.url}: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    try:
        data = upstream.json()
    except ValueError:
        logger.error(f"Non-JSON response from extraction API (status {upstream.status_code})")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": "Invalid response from Deepseek API", "raw": upstream.text},
        )

    if not upstream.ok:
        logger.info(f"Extraction API returned {upstream.status_code} for {payload.url}")

    return JSONResponse(status_code=upstream.status_code, content=data)


def main():
    """Run the proxy with uvicorn."""
    parser = argparse.ArgumentParser(description="Serve the URL extraction proxy.")
    parser.add_argument(
        "--host",
        default=os.getenv("EXTRACT_PROXY_HOST", "127.0.0.1"),
        help="Interface to bind (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("EXTRACT_PROXY_PORT", "8000")),
        help="Port to listen on (default: 8000)"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    if not get_api_key():
        logger.warning("DEEPSEEK_API_KEY is not set; /api/extract will answer 500")

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()

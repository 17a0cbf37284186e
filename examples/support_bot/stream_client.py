"""Stream an optimization from a running ``promptground serve`` instance."""

import asyncio
import json
import os

import httpx
from loguru import logger

API_URL = os.environ.get("PROMPTGROUND_URL", "http://127.0.0.1:8000")

REQUEST = {
    "optimizationModel": "gpt-4o-mini",
    "reflectionModel": "gpt-4o",
    "batchSize": 2,
    "numRollouts": 3,
    "selectedMetrics": ["tone", "accuracy"],
}


async def main() -> None:
    async with httpx.AsyncClient(timeout=None) as client:
        async with client.stream("POST", f"{API_URL}/api/optimize", json=REQUEST) as resp:
            resp.raise_for_status()
            async for line in resp.aiter_lines():
                if not line.startswith("data: "):
                    continue
                event = json.loads(line[len("data: "):])
                if event["type"] in ("start", "iteration"):
                    logger.info(event.get("message", ""))
                elif event["type"] == "complete":
                    logger.success(event["message"])
                    print(f"\nFinal prompt:\n{event['finalPrompt']}")
                elif event["type"] == "error":
                    logger.error(event["error"])


if __name__ == "__main__":
    asyncio.run(main())

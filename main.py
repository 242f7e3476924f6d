import asyncio
import logging
import sys
import time

from api_client import ApiClient
from config import load_config
from errors import ApiToCsvError
from pipeline import run_pipeline


def run() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    cfg = load_config()

    api = cfg["api"]
    output = cfg["output"]

    client = ApiClient(
        base_url=api["base_url"],
        verify_ssl=api.get("verify_ssl", True),
        timeout_seconds=float(api.get("default_timeout", 30.0)),
        retries=int(api.get("default_retries", 3)),
        backoff_base=float(api.get("default_backoff_base", 0.5)),
        chunk_size=int(api.get("chunk_size", 65536)),
    )

    start = time.monotonic()
    try:
        asyncio.run(
            run_pipeline(
                client,
                output["path"],
                params={"results": str(api["results"])},
                quoting=output.get("quoting", "none"),
                atomic=output.get("atomic", True),
            )
        )
    except ApiToCsvError as e:
        logging.error("Unexpected error: %s", e)
        return 1
    except Exception:
        logging.exception("Unexpected error")
        return 1

    logging.info("File has been written")
    logging.info("time spent: %sms", int((time.monotonic() - start) * 1000))
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()

"""Entry point: python -m ledgerflow.platform.consumers."""

import asyncio

from . import main

if __name__ == "__main__":
    asyncio.run(main())

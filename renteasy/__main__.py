"""Entry point for running the RentEasy service via `python -m renteasy`."""

from renteasy import RentEasyService
from renteasy.config import get_renteasy_config

if __name__ == "__main__":
    config = get_renteasy_config()
    url = config.RENTEASY.URL

    print(f"Starting RentEasy service at {url}...")
    print("Press Ctrl+C to stop.")

    RentEasyService.launch(url=url)

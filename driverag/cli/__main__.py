"""Allow ``python -m driverag.cli`` execution."""

from driverag.cli.ingest import main

main()

"""Command-line tools for driveRAG.

- ``python -m driverag.cli ingest`` -- index a Google Drive folder
- ``python -m driverag.cli stats`` -- show index statistics
- ``python -m driverag.cli delete`` -- remove one file's vectors
- ``python -m driverag.cli ask`` -- stream an answer to a question
"""

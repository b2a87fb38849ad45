"""Media upload module for the admin panel.

Mediates between panel clients and the Cloudinary object store:

- POST /api/upload              - ingest a batch of files into a folder
- DELETE /api/cloudinary/delete - destroy one stored file by public id

Files are never stored locally; the provider owns persistence and serves
each file from its delivery URL. A batch is reported all-or-nothing: if any
file fails, the files of that batch that did reach the provider are
destroyed again before the error is returned.
"""

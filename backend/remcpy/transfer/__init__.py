"""Transfer module: the HTTP surface of the relay.

Upload (POST /@{identifier}) streams a multipart ``file`` part into the
content store and arms its expiry. Download (GET /@{identifier}) streams the
stored bytes back as an ``application/octet-stream`` attachment.
"""

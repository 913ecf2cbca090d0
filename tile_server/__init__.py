"""
Tile Server — static slippy-map tiles over HTTP

- Resolves GET /tiles/{z}/{x}/{y} to `{tiles_dir}/{z}/{x}/{y}.png` and streams the bytes
- 404 when the tile cannot be opened, 500 when it opens but cannot be read
- GET / returns a small HTML landing page

Entry point:
    python -m tile_server.service --tiles-dir data/tiles --port 5000
"""

"""HTTP server for the browser front-end."""

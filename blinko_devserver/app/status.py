"""Human-readable connection instructions and a JSON health probe."""
from __future__ import annotations

import logging
from typing import Any, Callable

from flask import Blueprint, current_app, jsonify, render_template_string

from ..utils import local_ip

LOGGER = logging.getLogger(__name__)

STATUS_TEMPLATE = r"""<!DOCTYPE html>
<html>
  <head>
    <title>Blinko Plugin Development Server</title>
    <style>
      body { font-family: system-ui, -apple-system, sans-serif; max-width: 800px;
             margin: 40px auto; padding: 0 20px; line-height: 1.6; color: #333; }
      .container { background: #f5f5f5; border-radius: 8px; padding: 20px; margin: 20px 0; }
      .code { background: #e0e0e0; padding: 10px; border-radius: 4px; font-family: monospace;
              cursor: pointer; transition: background-color 0.2s; }
      .code:hover { background: #d0d0d0; }
      .toast { position: fixed; top: 20px; right: 20px; padding: 10px 20px; background: #4CAF50;
               color: white; border-radius: 4px; display: none; }
    </style>
  </head>
  <body>
    <div id="toast" class="toast">Copied to clipboard!</div>
    <h1>Blinko Plugin Development Server</h1>
    <div class="container">
      <h2>Connection Instructions:</h2>
      <p>Enter one of the following URLs in your Blinko plugin settings:</p>
      <p>Local Network Access:</p>
      <div class="code" onclick="copyToClipboard(this)">ws://{{ lan_ip }}:{{ ws_port }}</div>
      <p>Local Access:</p>
      <div class="code" onclick="copyToClipboard(this)">ws://localhost:{{ ws_port }}</div>
      <p>External Access:</p>
      <div class="code" id="external-url" onclick="copyToClipboard(this)">ws://localhost:{{ ws_port }}</div>
    </div>
    <div class="container">
      <h3>Plugin Information:</h3>
      <p><strong>Name:</strong> {{ plugin_name }}</p>
      <p><strong>Version:</strong> {{ plugin_version }}</p>
    </div>
    <p>Note: Keep this window open while developing your plugin.</p>
    <script>
      document.addEventListener('DOMContentLoaded', () => {
        const element = document.getElementById('external-url');
        const hostname = window.location.hostname;
        const wsHostname = hostname
          .replace(/-\d{4}\.preview\.csb\.app$/, '-{{ ws_port }}.preview.csb.app')
          .replace(/-{{ http_port }}\./, '-{{ ws_port }}.');
        element.textContent = wsHostname === hostname
          ? `ws://${hostname}:{{ ws_port }}`
          : `ws://${wsHostname}`;
      });

      function copyToClipboard(element) {
        const text = element.textContent.trim();
        navigator.clipboard.writeText(text).then(showToast).catch(() => {
          const textarea = document.createElement('textarea');
          textarea.value = text;
          document.body.appendChild(textarea);
          textarea.select();
          try {
            document.execCommand('copy');
            showToast();
          } catch (err) {
            console.error('Failed to copy:', err);
          }
          document.body.removeChild(textarea);
        });
      }

      function showToast() {
        const toast = document.getElementById('toast');
        toast.style.display = 'block';
        setTimeout(() => { toast.style.display = 'none'; }, 2000);
      }
    </script>
  </body>
</html>
"""


def create_status_blueprint(snapshot: Callable[[], dict[str, Any]]) -> Blueprint:
    blueprint = Blueprint("status", __name__)

    @blueprint.get("/")
    def index() -> str:
        metadata = current_app.extensions["devserver.metadata"]
        return render_template_string(
            STATUS_TEMPLATE,
            lan_ip=current_app.config.get("DEVSERVER_LAN_IP") or local_ip(),
            ws_port=current_app.config["DEVSERVER_WS_PORT"],
            http_port=current_app.config["DEVSERVER_HTTP_PORT"],
            plugin_name=metadata.name,
            plugin_version=metadata.version,
        )

    @blueprint.get("/health")
    def health() -> Any:
        return jsonify(snapshot())

    return blueprint


__all__ = ["STATUS_TEMPLATE", "create_status_blueprint"]

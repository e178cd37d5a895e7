from __future__ import annotations

import json

from fastapi import APIRouter, Request
from fastapi.responses import Response

from soundfly.config import settings
from soundfly.domain.audio_url import AUDIO_EXTENSIONS, AUDIO_PATH_KEYWORDS


router = APIRouter(prefix="/bridge")


_SCRIPT = r"""
(function () {
  if (window.__soundflyBridge && window.__soundflyBridge.version >= CONFIG.version) { return; }
  var bridge = window.__soundflyBridge = { version: CONFIG.version, videoId: null };

  // ---------- transport ----------
  var ws = null, wsQueue = [];
  // captured before the sniffing wrapper below so our own replies are not sniffed
  var bridgeFetch = window.fetch;
  function connect() {
    try {
      ws = new WebSocket(CONFIG.base.replace(/^http/, 'ws') + '/bridge/ws');
      ws.onopen = function () { while (wsQueue.length) { ws.send(wsQueue.shift()); } };
      ws.onmessage = function (ev) { try { onEvent(JSON.parse(ev.data)); } catch (e) {} };
      ws.onclose = function () { ws = null; setTimeout(connect, 3000); };
    } catch (e) { ws = null; }
  }
  function send(channel, msg) {
    // Prefer a native JavaScript channel when the shell exposes one
    var native = window[channel];
    if (native && typeof native.postMessage === 'function') {
      native.postMessage(JSON.stringify(msg));
      return;
    }
    var frame = JSON.stringify(Object.assign({ channel: channel }, msg));
    if (ws && ws.readyState === 1) { ws.send(frame); return; }
    if (ws && ws.readyState === 0) { wsQueue.push(frame); return; }
    if (!bridgeFetch) { return; }
    bridgeFetch.call(window, CONFIG.base + '/bridge/' + channel, {
      method: 'POST', headers: { 'Content-Type': 'application/json' }, body: JSON.stringify(msg)
    }).then(function (resp) { return resp.json(); })
      .then(function (data) { onEvent(Object.assign({ type: 'reply' }, data)); })
      .catch(function () {});
  }
  bridge.send = send;

  // ---------- toasts and pushed events ----------
  function toast(message, level, timeoutMs) {
    var box = document.getElementById('soundfly-toasts');
    if (!box) {
      box = document.createElement('div');
      box.id = 'soundfly-toasts';
      box.style.cssText = 'position:fixed;left:12px;right:12px;bottom:16px;z-index:2147483647;display:flex;flex-direction:column;gap:8px;pointer-events:none';
      document.body.appendChild(box);
    }
    var el = document.createElement('div');
    var bg = { error: '#ea4335', warning: '#fbbc05', success: '#34a853' }[level] || '#333';
    el.style.cssText = 'padding:10px 14px;border-radius:10px;color:#fff;font:14px/1.35 system-ui;box-shadow:0 8px 20px rgba(0,0,0,.3);background:' + bg;
    el.textContent = message;
    box.appendChild(el);
    setTimeout(function () { el.remove(); }, Math.max(800, timeoutMs || 2000));
  }
  function onEvent(ev) {
    if (!ev || !ev.type) { return; }
    if (ev.type === 'toast') { toast(ev.message, ev.level, ev.timeout_ms); }
    else if (ev.type === 'player_status') { bridge.status = ev.status; }
    else if (ev.type === 'reply') {
      if (ev.ok && ev.videoId && ev.channel === 'youtubeAudio') { bridge.videoId = ev.videoId; }
    }
    else if (ev.type === 'ad' && window.shell && typeof window.shell.postMessage === 'function') {
      window.shell.postMessage(JSON.stringify(ev));
    }
  }

  // ---------- audio URL heuristic ----------
  function absolute(src) {
    try { return new URL(src, location.href).href; } catch (e) { return src || ''; }
  }
  function isAudioUrl(url) {
    if (!url) { return false; }
    var low = String(url).toLowerCase();
    if (low.indexOf('blob:') === 0 || low.indexOf('data:') === 0) { return false; }
    var path;
    try { path = new URL(low, location.href).pathname; } catch (e) { path = low.split('?')[0]; }
    for (var i = 0; i < CONFIG.extensions.length; i++) {
      if (path.slice(-CONFIG.extensions[i].length) === CONFIG.extensions[i]) { return true; }
    }
    for (var j = 0; j < CONFIG.keywords.length; j++) {
      if (path.indexOf(CONFIG.keywords[j]) !== -1) { return true; }
    }
    return false;
  }
  bridge.isAudioUrl = isAudioUrl;

  // ---------- <audio> interception ----------
  function metadata() {
    var t = document.querySelector('[data-track-title], .track-title, .song-title');
    var a = document.querySelector('[data-track-artist], .track-artist, .song-artist');
    var img = document.querySelector('[data-track-artwork], .track-artwork img, .player img');
    return {
      title: t ? t.textContent.trim() : document.title,
      artist: a ? a.textContent.trim() : undefined,
      artwork: img ? absolute(img.getAttribute('src')) : undefined
    };
  }
  function patch(el) {
    if (!el || el.__soundflyPatched || el.tagName !== 'AUDIO') { return el; }
    el.__soundflyPatched = true;
    el.setAttribute('playsinline', '');
    el.setAttribute('webkit-playsinline', '');
    var origPlay = el.play, origPause = el.pause;
    el.play = function () {
      var url = absolute(el.currentSrc || el.src);
      if (isAudioUrl(url)) {
        el.muted = true;
        el.volume = 0;
        send('nativeAudio', Object.assign({ command: 'play', url: url, pageUrl: location.href }, metadata()));
      }
      return origPlay.apply(el, arguments);
    };
    el.pause = function () {
      if (isAudioUrl(absolute(el.currentSrc || el.src))) { send('nativeAudio', { command: 'pause' }); }
      return origPause.apply(el, arguments);
    };
    el.addEventListener('seeked', function () {
      if (isAudioUrl(absolute(el.currentSrc || el.src))) {
        send('nativeAudio', { command: 'seek', position: String(el.currentTime || 0) });
      }
    });
    el.addEventListener('ended', function () { send('nativeAudio', { command: 'ended' }); });
    return el;
  }
  var OriginalAudio = window.Audio;
  window.Audio = function (src) { return patch(new OriginalAudio(src)); };
  window.Audio.prototype = OriginalAudio.prototype;
  var origCreate = document.createElement;
  document.createElement = function (tag) {
    var el = origCreate.apply(document, arguments);
    return String(tag).toLowerCase() === 'audio' ? patch(el) : el;
  };
  document.querySelectorAll('audio').forEach(patch);

  // ---------- YouTube iframes ----------
  var VIDEO_ID_RE = /^[A-Za-z0-9_-]{11}$/;
  var YT_RE = /(?:youtube(?:-nocookie)?\.com\/embed\/|youtu\.be\/)([A-Za-z0-9_-]{11})/;
  function watchIframe(node) {
    if (!node || node.tagName !== 'IFRAME') { return; }
    var m = YT_RE.exec(node.src || '');
    if (m && m[1] !== bridge.videoId) {
      bridge.videoId = m[1];
      send('youtubeAudio', { command: 'prepare', videoId: m[1] });
    }
  }
  document.querySelectorAll('iframe').forEach(watchIframe);
  new MutationObserver(function (mutations) {
    mutations.forEach(function (mutation) {
      mutation.addedNodes.forEach(function (node) {
        if (node.nodeType !== 1) { return; }
        patch(node);
        watchIframe(node);
        if (node.querySelectorAll) {
          node.querySelectorAll('audio').forEach(patch);
          node.querySelectorAll('iframe').forEach(watchIframe);
        }
      });
      if (mutation.type === 'attributes') { watchIframe(mutation.target); }
    });
  }).observe(document.documentElement, { childList: true, subtree: true, attributes: true, attributeFilter: ['src'] });

  // ---------- network sniffing ----------
  function sniff(url, text) {
    if (!text || text.length > CONFIG.maxSniffBytes) { return; }
    if (CONFIG.sniffFilter && String(url).indexOf(CONFIG.sniffFilter) === -1) { return; }
    try {
      var data = JSON.parse(text);
      var first = data && data.results && data.results[0];
      if (first && VIDEO_ID_RE.test(first.id || '')) { bridge.videoId = first.id; }
    } catch (e) {}
    send('youtubeAudio', { command: 'sniff', url: String(url), body: text });
  }
  var origOpen = XMLHttpRequest.prototype.open;
  XMLHttpRequest.prototype.open = function (method, url) {
    this.__soundflyUrl = url;
    this.addEventListener('load', function () {
      try { if (!this.responseType || this.responseType === 'text') { sniff(this.__soundflyUrl, this.responseText); } } catch (e) {}
    });
    return origOpen.apply(this, arguments);
  };
  if (window.fetch) {
    var origFetch = window.fetch;
    window.fetch = function (input) {
      var url = typeof input === 'string' ? input : (input && input.url) || '';
      return origFetch.apply(this, arguments).then(function (resp) {
        try { resp.clone().text().then(function (t) { sniff(url, t); }).catch(function () {}); } catch (e) {}
        return resp;
      });
    };
  }

  // ---------- lifecycle ----------
  document.addEventListener('visibilitychange', function () {
    if (!bridge.videoId) { return; }
    if (document.hidden) {
      send('youtubeAudio', { command: 'background', videoId: bridge.videoId, title: document.title });
    } else {
      send('youtubeAudio', { command: 'foreground' });
    }
  });
  if (CONFIG.backgroundAudio) { send('backgroundAudio', { command: 'start' }); }
  send('shell', { command: 'page_loaded', pageUrl: location.href });

  connect();
  console.log('soundfly bridge v' + CONFIG.version + ' injected');
})();
"""


def build_script(base_url: str) -> str:
    config = {
        "version": settings.bridge_script_version,
        "base": base_url.rstrip("/"),
        "extensions": list(AUDIO_EXTENSIONS),
        "keywords": list(AUDIO_PATH_KEYWORDS),
        "sniffFilter": settings.sniff_url_filter,
        "maxSniffBytes": 256 * 1024,
        "backgroundAudio": bool(settings.background_audio_enabled),
    }
    # CONFIG lives in the wrapper scope so re-injection picks up new values
    return "(function(){var CONFIG = " + json.dumps(config) + ";\n" + _SCRIPT + "\n})();\n"


@router.get("/inject.js")
async def inject_script(request: Request) -> Response:
    return Response(
        content=build_script(str(request.base_url)),
        media_type="application/javascript",
        headers={"Cache-Control": "no-store", "X-Bridge-Version": str(settings.bridge_script_version)},
    )

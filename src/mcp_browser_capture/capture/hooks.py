"""
In-page instrumentation for the capture session.

``build_hook_script`` assembles the script injected before page scripts run.
It patches the page's own crypto, fetch and XHR primitives, watches
<video>/<source> elements and traps the Hls.js and dash.js globals. Everything
it finds goes into ``window.__mcpCapture`` buffers that DRAIN_SCRIPT empties on
every poll. TEARDOWN_SCRIPT puts every patched primitive back.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class HookOptions:
    hook_crypto: bool = True
    hook_fetch: bool = True
    watch_video: bool = True
    hook_players: bool = True


_PRELUDE = r"""
(function () {
  if (window.__mcpCapture && window.__mcpCapture.installed) { return; }
  var buf = {installed: true, crypto: [], fetch: [], video: [], player: []};
  var seen = {};
  var restore = [];
  var timers = [];
  var pollers = [];
  var URL_RE = /(https?:\/\/[^\s"'<>\\]+)/gi;
  var MEDIA_RE = /(https?:\/\/[^\s"'<>\\]+\.(?:m3u8|mpd|mp4|webm|mkv)[^\s"'<>\\]*)/gi;
  var MEDIA_URL = /\.(m3u8|mpd|mp4)/i;
  window.__mcpCapture = buf;

  function abs(u) {
    if (!u || typeof u !== 'string') { return null; }
    try { return new URL(u, location.href).href; } catch (e) { return u; }
  }
  function push(name, url, origin) {
    if (!url || typeof url !== 'string' || url.indexOf('blob:') === 0 || url.indexOf('data:') === 0) { return; }
    var key = name + '|' + url;
    if (seen[key] || buf[name].length >= 500) { return; }
    seen[key] = true;
    buf[name].push({url: url, origin: origin, ts: Date.now()});
  }
  function scan(name, text, re, origin) {
    if (!text || typeof text !== 'string') { return; }
    var found = text.replace(/\\\//g, '/').match(re);
    if (found) { found.forEach(function (u) { push(name, u, origin); }); }
  }
"""

_CRYPTO = r"""
  function hookCryptoJS() {
    var C = window.CryptoJS;
    if (!C || !C.AES || typeof C.AES.decrypt !== 'function') { return false; }
    if (C.AES.__mcpHooked) { return true; }
    var orig = C.AES.decrypt;
    C.AES.decrypt = function () {
      var result = orig.apply(this, arguments);
      try { scan('crypto', result.toString(C.enc.Utf8), URL_RE, 'cryptojs'); } catch (e) {}
      return result;
    };
    C.AES.__mcpHooked = true;
    restore.push(function () { C.AES.decrypt = orig; delete C.AES.__mcpHooked; });
    return true;
  }
  if (!hookCryptoJS()) {
    var cryptoTimer = setInterval(function () { if (hookCryptoJS()) { clearInterval(cryptoTimer); } }, 100);
    timers.push(cryptoTimer);
    setTimeout(function () { clearInterval(cryptoTimer); }, 10000);
  }
  if (window.crypto && window.crypto.subtle && typeof window.crypto.subtle.decrypt === 'function') {
    var subtle = window.crypto.subtle, origDecrypt = subtle.decrypt;
    subtle.decrypt = function () {
      return origDecrypt.apply(subtle, arguments).then(function (plain) {
        try { scan('crypto', new TextDecoder().decode(plain), URL_RE, 'subtle'); } catch (e) {}
        return plain;
      });
    };
    restore.push(function () { subtle.decrypt = origDecrypt; });
  }
"""

_FETCH = r"""
  if (typeof window.fetch === 'function') {
    var origFetch = window.fetch;
    window.fetch = function () {
      var args = arguments;
      return origFetch.apply(this, args).then(function (resp) {
        try {
          var reqUrl = typeof args[0] === 'string' ? args[0] : (args[0] && args[0].url);
          if (reqUrl && MEDIA_URL.test(String(reqUrl))) { push('fetch', abs(String(reqUrl)), 'fetch'); }
          resp.clone().text().then(function (t) { scan('fetch', t, MEDIA_RE, 'fetch-body'); }, function () {});
        } catch (e) {}
        return resp;
      });
    };
    restore.push(function () { window.fetch = origFetch; });
  }
  if (window.XMLHttpRequest) {
    var XO = XMLHttpRequest.prototype.open, XS = XMLHttpRequest.prototype.send;
    XMLHttpRequest.prototype.open = function (method, url) {
      this.__mcpUrl = url;
      return XO.apply(this, arguments);
    };
    XMLHttpRequest.prototype.send = function () {
      var xhr = this;
      xhr.addEventListener('load', function () {
        try {
          if (xhr.__mcpUrl && MEDIA_URL.test(String(xhr.__mcpUrl))) { push('fetch', abs(String(xhr.__mcpUrl)), 'xhr'); }
          if (!xhr.responseType || xhr.responseType === 'text') { scan('fetch', xhr.responseText, MEDIA_RE, 'xhr-body'); }
        } catch (e) {}
      });
      return XS.apply(this, arguments);
    };
    restore.push(function () { XMLHttpRequest.prototype.open = XO; XMLHttpRequest.prototype.send = XS; });
  }
"""

_VIDEO = r"""
  function collectVideos() {
    var nodes = document.querySelectorAll('video, audio, video source, audio source');
    for (var i = 0; i < nodes.length; i++) {
      var n = nodes[i];
      push('video', n.currentSrc || n.src || abs(n.getAttribute('src')), n.tagName.toLowerCase());
    }
  }
  var videoObserver = new MutationObserver(collectVideos);
  (function observe() {
    if (!document.documentElement) { setTimeout(observe, 10); return; }
    videoObserver.observe(document.documentElement, {childList: true, subtree: true, attributes: true, attributeFilter: ['src']});
    collectVideos();
  })();
  restore.push(function () { videoObserver.disconnect(); });
  pollers.push(collectVideos);
"""

_PLAYERS = r"""
  function wrapHls(H) {
    if (!H || !H.prototype || H.prototype.__mcpHooked || typeof H.prototype.loadSource !== 'function') { return; }
    var orig = H.prototype.loadSource;
    H.prototype.loadSource = function (u) { push('player', abs(u), 'hls.js'); return orig.apply(this, arguments); };
    H.prototype.__mcpHooked = true;
    restore.push(function () { H.prototype.loadSource = orig; delete H.prototype.__mcpHooked; });
  }
  function wrapDash(d) {
    if (!d || typeof d.MediaPlayer !== 'function' || d.__mcpHooked) { return; }
    var origFactory = d.MediaPlayer;
    d.MediaPlayer = function () {
      var factory = origFactory.apply(this, arguments);
      var origCreate = factory && factory.create;
      if (typeof origCreate !== 'function') { return factory; }
      factory.create = function () {
        var player = origCreate.apply(this, arguments);
        ['attachSource', 'initialize'].forEach(function (m) {
          var fn = player && player[m];
          if (typeof fn !== 'function') { return; }
          player[m] = function () {
            var src = m === 'initialize' ? arguments[1] : arguments[0];
            if (typeof src === 'string') { push('player', abs(src), 'dash.js'); }
            return fn.apply(this, arguments);
          };
        });
        return player;
      };
      return factory;
    };
    d.__mcpHooked = true;
    restore.push(function () { d.MediaPlayer = origFactory; delete d.__mcpHooked; });
  }
  function trapGlobal(name, wrap) {
    if (window[name]) { wrap(window[name]); return; }
    var stored;
    try {
      Object.defineProperty(window, name, {
        configurable: true,
        get: function () { return stored; },
        set: function (v) { stored = v; wrap(v); }
      });
      restore.push(function () {
        var v = stored;
        delete window[name];
        if (v !== undefined) { window[name] = v; }
      });
    } catch (e) {}
  }
  trapGlobal('Hls', wrapHls);
  trapGlobal('dashjs', wrapDash);

  function pollPlayers() {
    try {
      if (typeof window.jwplayer === 'function') {
        var jw = document.querySelectorAll('[id^="jwplayer"], .jwplayer');
        for (var i = 0; i < jw.length; i++) {
          var p = window.jwplayer(jw[i].id || i);
          var list = (p && typeof p.getPlaylist === 'function' && p.getPlaylist()) || [];
          list.forEach(function (item) {
            push('player', abs(item.file), 'jwplayer');
            (item.sources || []).forEach(function (s) { push('player', abs(s.file), 'jwplayer'); });
          });
        }
      }
      if (typeof window.videojs === 'function') {
        var vj = document.querySelectorAll('.video-js');
        for (var k = 0; k < vj.length; k++) {
          var pl = window.videojs.getPlayer ? window.videojs.getPlayer(vj[k].id || vj[k]) : window.videojs(vj[k].id);
          if (pl && typeof pl.currentSrc === 'function') { push('player', abs(pl.currentSrc()), 'videojs'); }
        }
      }
    } catch (e) {}
  }
  timers.push(setInterval(pollPlayers, 2000));
  pollers.push(pollPlayers);
"""

_EPILOGUE = r"""
  window.__mcpCapturePoll = function () {
    pollers.forEach(function (fn) { try { fn(); } catch (e) {} });
  };
  window.__mcpCaptureTeardown = function () {
    timers.forEach(function (t) { clearInterval(t); });
    restore.reverse().forEach(function (fn) { try { fn(); } catch (e) {} });
    restore = [];
    buf.installed = false;
  };
})();
"""


def build_hook_script(options: HookOptions = HookOptions()) -> str:
    parts = [_PRELUDE]
    if options.hook_crypto:
        parts.append(_CRYPTO)
    if options.hook_fetch:
        parts.append(_FETCH)
    if options.watch_video:
        parts.append(_VIDEO)
    if options.hook_players:
        parts.append(_PLAYERS)
    parts.append(_EPILOGUE)
    return "".join(parts)


DRAIN_SCRIPT = r"""
var b = window.__mcpCapture;
if (!b) { return null; }
if (typeof window.__mcpCapturePoll === 'function') { window.__mcpCapturePoll(); }
return {
  installed: !!b.installed,
  crypto: b.crypto.splice(0),
  fetch: b.fetch.splice(0),
  video: b.video.splice(0),
  player: b.player.splice(0)
};
"""

TEARDOWN_SCRIPT = r"""
if (typeof window.__mcpCaptureTeardown === 'function') { window.__mcpCaptureTeardown(); }
try { delete window.__mcpCapture; delete window.__mcpCapturePoll; delete window.__mcpCaptureTeardown; } catch (e) {}
return true;
"""

DOM_SCAN_SCRIPT = r"""
var platforms = arguments[0] || [];
var out = {videos: [], audio: [], iframes: [], downloadLinks: [], platforms: [], players: []};
document.querySelectorAll('video').forEach(function (v, i) {
  out.videos.push({
    index: i,
    src: v.currentSrc || v.src || v.getAttribute('src'),
    poster: v.poster || null,
    sources: Array.prototype.map.call(v.querySelectorAll('source'), function (s) {
      return {src: s.src || s.getAttribute('src'), type: s.type || null};
    })
  });
});
document.querySelectorAll('audio').forEach(function (a, i) {
  out.audio.push({index: i, src: a.currentSrc || a.src || a.getAttribute('src')});
});
document.querySelectorAll('iframe').forEach(function (f, i) {
  var src = f.src || f.getAttribute('data-src') || '';
  var low = src.toLowerCase();
  var platform = low.indexOf('youtube') >= 0 ? 'YouTube'
    : low.indexOf('vimeo') >= 0 ? 'Vimeo'
    : low.indexOf('dailymotion') >= 0 ? 'Dailymotion' : 'Unknown';
  platforms.forEach(function (p) { if (low.indexOf(p) >= 0) { platform = p; } });
  out.iframes.push({index: i, src: src, platform: platform});
});
document.querySelectorAll('a[href*="download"], a[href*=".mp4"], a[href*=".mkv"], .download-btn').forEach(function (el) {
  out.downloadLinks.push({href: el.href || el.getAttribute('href'), text: (el.textContent || '').trim().slice(0, 120)});
});
var html = document.documentElement ? document.documentElement.innerHTML.toLowerCase() : '';
platforms.forEach(function (p) { if (html.indexOf(p) >= 0) { out.platforms.push(p); } });
['Hls', 'dashjs', 'jwplayer', 'videojs', 'Plyr', 'shaka', 'Clappr'].forEach(function (g) {
  if (window[g]) { out.players.push(g); }
});
return out;
"""


__all__ = [
    "HookOptions",
    "build_hook_script",
    "DRAIN_SCRIPT",
    "TEARDOWN_SCRIPT",
    "DOM_SCAN_SCRIPT",
]

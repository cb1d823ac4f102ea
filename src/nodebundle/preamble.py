"""Node.js runtime preamble.

dart2js output expects a browser-like global scope. The preamble prepended
to every bundle maps that scope onto Node's globals (``self``, ``location``,
``document.currentScript``, deferred loading) so the bundle runs under
``node`` directly.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from nodebundle.staging import atomic_write_bytes

logger = structlog.get_logger(__name__)

_PREAMBLE = """\
// Node.js preamble for dart2js output.
var dartNodePreambleSelf = typeof global !== "undefined" ? global : window;
var self = Object.create(dartNodePreambleSelf);
self.scheduleImmediate = typeof setImmediate !== "undefined"
    ? function (cb) { setImmediate(cb); }
    : function (cb) { setTimeout(cb, 0); };
if (typeof require !== "undefined") { self.require = require; }
if (typeof exports !== "undefined") { self.exports = exports; }
if (typeof process !== "undefined") { self.process = process; }
if (typeof __dirname !== "undefined") { self.__dirname = __dirname; }
if (typeof __filename !== "undefined") { self.__filename = __filename; }
if (typeof Buffer !== "undefined") { self.Buffer = Buffer; }
var dartNodeIsActuallyNode = !dartNodePreambleSelf.window;
try {
  if (typeof WorkerGlobalScope !== "undefined" &&
      dartNodePreambleSelf instanceof WorkerGlobalScope) {
    dartNodeIsActuallyNode = false;
  }
  if (typeof process !== "undefined" && process.versions &&
      process.versions.hasOwnProperty("electron") &&
      process.versions.hasOwnProperty("node")) {
    dartNodeIsActuallyNode = true;
  }
} catch (e) {}
if (dartNodeIsActuallyNode) {
  var url = typeof __webpack_require__ !== "undefined"
      ? __non_webpack_require__("url")
      : require("url");
  Object.defineProperty(self, "location", {
    value: {
      get href() {
        if (url.pathToFileURL) {
          return url.pathToFileURL(process.cwd()).href + "/";
        }
        return "file://" + (function () {
          var cwd = process.cwd();
          if (process.platform !== "win32") { return cwd; }
          return "/" + cwd.replace(/\\\\/g, "/");
        })() + "/";
      }
    }
  });
  (function () {
    function computeCurrentScript() {
      try {
        throw new Error();
      } catch (e) {
        var stack = e.stack;
        var re = new RegExp("^ *at [^(]*\\\\((.*):[0-9]*:[0-9]*\\\\)$", "mg");
        var lastMatch = null;
        do {
          var match = re.exec(stack);
          if (match != null) { lastMatch = match; }
        } while (match != null);
        return lastMatch ? lastMatch[1] : null;
      }
    }
    var cachedCurrentScript = null;
    self.document = {
      get currentScript() {
        if (cachedCurrentScript == null) {
          cachedCurrentScript = { src: computeCurrentScript() };
        }
        return cachedCurrentScript;
      }
    };
  })();
  self.dartDeferredLibraryLoader = function (uri, successCallback, errorCallback) {
    try {
      load(uri);
      successCallback();
    } catch (error) {
      errorCallback(error);
    }
  };
}
"""


def _minify(text: str) -> str:
    lines = (line.strip() for line in text.splitlines())
    return " ".join(line for line in lines if line and not line.startswith("//")) + "\n"


def get_preamble(minified: bool = False) -> str:
    """Return the Node preamble text.

    Args:
        minified: Collapse the preamble onto one line without comments.
    """
    return _minify(_PREAMBLE) if minified else _PREAMBLE


def add_preamble(bundle: Path, preamble: str) -> None:
    """Prepend ``preamble`` to the bundle at ``bundle``, in place.

    The new content is written to a temporary file next to the bundle and
    swapped in with ``os.replace``, so the bundle is never left truncated.

    Raises:
        OSError: If the bundle cannot be read or replaced.
    """
    contents = bundle.read_bytes()
    atomic_write_bytes(bundle, preamble.encode("utf-8") + contents)
    logger.debug("preamble_added", bundle=str(bundle), preamble_bytes=len(preamble))

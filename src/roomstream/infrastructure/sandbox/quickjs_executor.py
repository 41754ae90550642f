"""QuickJS sandbox for vendor signing scripts.

The platform serves an obfuscated signing routine that probes its
environment (``window``/``document`` members must look like native
functions) and hashes with ``CryptoJS.MD5``. Each compile gets a fresh
QuickJS context holding exactly three globals:

- ``CryptoJS`` with an ``MD5`` over the UTF-8 bytes of its argument
- ``window`` and ``document``, both proxies whose every property reads
  as ``"function () { [native code] }"``

QuickJS has no DOM, network or filesystem bindings, and the host side
exposes no callables at all. MD5 runs in JavaScript because QuickJS
refuses calls into Python while a time limit is set.

Evaluation and signing run synchronously on the calling thread, so the
time limit is also the longest a misbehaving script can stall the event
loop. Keep it small.
"""

from __future__ import annotations

import re

import quickjs
import structlog

from roomstream.domain.exceptions import SandboxExecutionError

log = structlog.get_logger(__name__)

NATIVE_CODE_SENTINEL = "function () { [native code] }"

_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")

# RFC 1321 MD5, returning lowercase hex like CryptoJS's WordArray.toString().
_MD5_JS = """
(function () {
  var K = [
    0xd76aa478, 0xe8c7b756, 0x242070db, 0xc1bdceee,
    0xf57c0faf, 0x4787c62a, 0xa8304613, 0xfd469501,
    0x698098d8, 0x8b44f7af, 0xffff5bb1, 0x895cd7be,
    0x6b901122, 0xfd987193, 0xa679438e, 0x49b40821,
    0xf61e2562, 0xc040b340, 0x265e5a51, 0xe9b6c7aa,
    0xd62f105d, 0x02441453, 0xd8a1e681, 0xe7d3fbc8,
    0x21e1cde6, 0xc33707d6, 0xf4d50d87, 0x455a14ed,
    0xa9e3e905, 0xfcefa3f8, 0x676f02d9, 0x8d2a4c8a,
    0xfffa3942, 0x8771f681, 0x6d9d6122, 0xfde5380c,
    0xa4beea44, 0x4bdecfa9, 0xf6bb4b60, 0xbebfbc70,
    0x289b7ec6, 0xeaa127fa, 0xd4ef3085, 0x04881d05,
    0xd9d4d039, 0xe6db99e5, 0x1fa27cf8, 0xc4ac5665,
    0xf4292244, 0x432aff97, 0xab9423a7, 0xfc93a039,
    0x655b59c3, 0x8f0ccc92, 0xffeff47d, 0x85845dd1,
    0x6fa87e4f, 0xfe2ce6e0, 0xa3014314, 0x4e0811a1,
    0xf7537e82, 0xbd3af235, 0x2ad7d2bb, 0xeb86d391
  ];
  var S = [
    7, 12, 17, 22, 7, 12, 17, 22, 7, 12, 17, 22, 7, 12, 17, 22,
    5, 9, 14, 20, 5, 9, 14, 20, 5, 9, 14, 20, 5, 9, 14, 20,
    4, 11, 16, 23, 4, 11, 16, 23, 4, 11, 16, 23, 4, 11, 16, 23,
    6, 10, 15, 21, 6, 10, 15, 21, 6, 10, 15, 21, 6, 10, 15, 21
  ];

  function utf8(str) {
    var out = [];
    for (var i = 0; i < str.length; i++) {
      var c = str.charCodeAt(i);
      if (c >= 0xd800 && c <= 0xdbff && i + 1 < str.length) {
        var lo = str.charCodeAt(i + 1);
        if (lo >= 0xdc00 && lo <= 0xdfff) {
          c = 0x10000 + ((c - 0xd800) << 10) + (lo - 0xdc00);
          i++;
        }
      }
      if (c < 0x80) {
        out.push(c);
      } else if (c < 0x800) {
        out.push(0xc0 | (c >> 6), 0x80 | (c & 63));
      } else if (c < 0x10000) {
        out.push(0xe0 | (c >> 12), 0x80 | ((c >> 6) & 63), 0x80 | (c & 63));
      } else {
        out.push(0xf0 | (c >> 18), 0x80 | ((c >> 12) & 63),
                 0x80 | ((c >> 6) & 63), 0x80 | (c & 63));
      }
    }
    return out;
  }

  function hexWord(n) {
    var s = "";
    for (var i = 0; i < 4; i++) {
      var b = (n >>> (i * 8)) & 255;
      s += (b < 16 ? "0" : "") + b.toString(16);
    }
    return s;
  }

  return function md5(str) {
    var bytes = utf8(str);
    var bitLen = bytes.length * 8;
    bytes.push(0x80);
    while (bytes.length % 64 !== 56) {
      bytes.push(0);
    }
    var lenLo = bitLen >>> 0;
    var lenHi = Math.floor(bitLen / 4294967296) >>> 0;
    bytes.push(lenLo & 255, (lenLo >>> 8) & 255, (lenLo >>> 16) & 255,
               (lenLo >>> 24) & 255, lenHi & 255, (lenHi >>> 8) & 255,
               (lenHi >>> 16) & 255, (lenHi >>> 24) & 255);

    var a0 = 0x67452301, b0 = 0xefcdab89, c0 = 0x98badcfe, d0 = 0x10325476;
    var M = new Array(16);
    for (var off = 0; off < bytes.length; off += 64) {
      for (var j = 0; j < 16; j++) {
        var p = off + j * 4;
        M[j] = bytes[p] | (bytes[p + 1] << 8) | (bytes[p + 2] << 16) |
               (bytes[p + 3] << 24);
      }
      var A = a0, B = b0, C = c0, D = d0;
      for (var i = 0; i < 64; i++) {
        var F, g;
        if (i < 16) {
          F = (B & C) | (~B & D);
          g = i;
        } else if (i < 32) {
          F = (D & B) | (~D & C);
          g = (5 * i + 1) % 16;
        } else if (i < 48) {
          F = B ^ C ^ D;
          g = (3 * i + 5) % 16;
        } else {
          F = C ^ (B | ~D);
          g = (7 * i) % 16;
        }
        F = (F + A + K[i] + M[g]) | 0;
        A = D;
        D = C;
        C = B;
        B = (B + ((F << S[i]) | (F >>> (32 - S[i])))) | 0;
      }
      a0 = (a0 + A) | 0;
      b0 = (b0 + B) | 0;
      c0 = (c0 + C) | 0;
      d0 = (d0 + D) | 0;
    }
    return hexWord(a0) + hexWord(b0) + hexWord(c0) + hexWord(d0);
  };
})()
"""

# Installs the inert globals; the MD5 routine stays private to CryptoJS.
_PRELUDE = f"""
var CryptoJS = (function (md5) {{
  return {{
    MD5: function (message) {{
      var digest = md5(String(message));
      return {{ toString: function () {{ return digest; }} }};
    }}
  }};
}})({_MD5_JS});
var window = new Proxy({{}}, {{
  get: function () {{ return {NATIVE_CODE_SENTINEL!r}; }}
}});
var document = window;
"""


class SandboxedSigner:
    """Callable wrapper around a JS function living in a QuickJS context.

    Keeps the owning context alive for as long as the signer exists.
    """

    def __init__(self, context: quickjs.Context, fn: quickjs.Object) -> None:
        self._context = context
        self._fn = fn

    def __call__(self, address: str, device_id: str, timestamp: int) -> str:
        try:
            result = self._fn(address, device_id, timestamp)
        except quickjs.JSException as e:
            raise SandboxExecutionError(f"Signing function raised: {e}") from e

        if not isinstance(result, str):
            raise SandboxExecutionError(
                f"Signing function returned {type(result).__name__}, expected str"
            )
        return result


class QuickJsScriptExecutor:
    """Compiles vendor scripts into :class:`SandboxedSigner` objects.

    Args:
        entry_point: Global name the vendor script exports its signer as.
            Appended as the trailing expression of the evaluated source.
        time_limit_seconds: CPU time budget per evaluation/call. This is
            also the longest one call can block the event loop.
        memory_limit_bytes: Heap limit for each sandbox context.
    """

    def __init__(
        self,
        *,
        entry_point: str,
        time_limit_seconds: float = 1.0,
        memory_limit_bytes: int = 32 * 1024 * 1024,
    ) -> None:
        if not _IDENTIFIER.match(entry_point):
            raise ValueError(f"entry_point must be a JS identifier: {entry_point!r}")
        self._entry_point = entry_point
        self._time_limit = time_limit_seconds
        self._memory_limit = memory_limit_bytes

    def _new_context(self) -> quickjs.Context:
        ctx = quickjs.Context()
        ctx.set_memory_limit(self._memory_limit)
        ctx.set_time_limit(self._time_limit)
        ctx.eval(_PRELUDE)
        return ctx

    def compile(self, script_source: str) -> SandboxedSigner:
        """Evaluate *script_source* and return its exported signing function."""
        ctx = self._new_context()
        try:
            exported = ctx.eval(f"{script_source}\n;{self._entry_point}")
            kind = ctx.eval(f"typeof {self._entry_point}")
        except quickjs.JSException as e:
            log.warning(
                "sandbox_script_failed",
                entry_point=self._entry_point,
                error=str(e),
            )
            raise SandboxExecutionError(f"Vendor script failed to evaluate: {e}") from e

        if kind != "function" or not isinstance(exported, quickjs.Object):
            log.warning(
                "sandbox_entry_point_not_callable",
                entry_point=self._entry_point,
                kind=kind,
            )
            raise SandboxExecutionError(
                f"Vendor script did not export a function as {self._entry_point!r}"
            )

        log.debug(
            "sandbox_script_compiled",
            entry_point=self._entry_point,
            script_chars=len(script_source),
        )
        return SandboxedSigner(ctx, exported)

"""Sandbox worker process.

Started by ``SubprocessRuntime`` as ``python -I -S worker.py`` with an empty
environment and a throwaway working directory. It imports nothing but the
standard library and speaks newline-delimited JSON with the host:

    host   -> worker  {"type": "run", "source", "function", "max_result_bytes", "limits"}
    worker -> host    {"type": "call", "id", "name", "args"}
    host   -> worker  {"type": "reply", "id", "kind", "value"?, "message"?}
    worker -> host    {"type": "result", "ok": true, "value"}
                      {"type": "result", "ok": false, "error", "category", "trace"?}

The protocol uses a private duplicate of the original stdout; file descriptor 1
is pointed at stderr so anything the program prints cannot corrupt the channel.
"""

import asyncio
import builtins
import json
import os
import sys
import threading
import traceback

_SAFE_BUILTINS = (
    "abs",
    "aiter",
    "all",
    "anext",
    "any",
    "ascii",
    "bin",
    "bool",
    "callable",
    "chr",
    "dict",
    "divmod",
    "enumerate",
    "filter",
    "float",
    "format",
    "frozenset",
    "hash",
    "hex",
    "int",
    "isinstance",
    "issubclass",
    "iter",
    "len",
    "list",
    "map",
    "max",
    "min",
    "next",
    "oct",
    "ord",
    "pow",
    "print",
    "range",
    "repr",
    "reversed",
    "round",
    "set",
    "slice",
    "sorted",
    "str",
    "sum",
    "tuple",
    "zip",
    # exceptions a program may raise or catch
    "ArithmeticError",
    "AssertionError",
    "AttributeError",
    "Exception",
    "ImportError",
    "IndexError",
    "KeyError",
    "LookupError",
    "NameError",
    "NotImplementedError",
    "RuntimeError",
    "StopAsyncIteration",
    "StopIteration",
    "TimeoutError",
    "TypeError",
    "ValueError",
    "ZeroDivisionError",
)


class CapabilityError(Exception):
    pass


class ApplicationError(CapabilityError):
    """The backend rejected the operation (not found, not allowed, invalid input)."""


class TransportError(CapabilityError):
    """The backend could not be reached or answered with something unreadable."""


def _blocked_import(name, *args, **kwargs):
    raise ImportError(f"import of '{name}' is not allowed in the sandbox")


def _restricted_builtins():
    table = {n: getattr(builtins, n) for n in _SAFE_BUILTINS if hasattr(builtins, n)}
    table["__import__"] = _blocked_import
    return table


def _apply_limits(limits):
    try:
        import resource
    except ImportError:
        return
    for key, rlimit in (("memory_bytes", "RLIMIT_AS"), ("cpu_seconds", "RLIMIT_CPU")):
        value = limits.get(key)
        if not value or not hasattr(resource, rlimit):
            continue
        which = getattr(resource, rlimit)
        try:
            _, hard = resource.getrlimit(which)
            if hard != resource.RLIM_INFINITY:
                value = min(value, hard)
            resource.setrlimit(which, (value, hard))
        except (ValueError, OSError) as e:
            print(f"codemode worker: cannot set {rlimit}: {e}", file=sys.stderr)


def _error_message(exc):
    return str(exc) or type(exc).__name__


def _category(exc):
    if isinstance(exc, ApplicationError):
        return "application_error"
    if isinstance(exc, TransportError):
        return "transport_error"
    return "program_error"


def _make_proxy(call):
    class Codemode:
        __slots__ = ()

        def __getattr__(self, name):
            if name.startswith("__") and name.endswith("__"):
                raise AttributeError(name)

            async def invoke(args=None, /, **kwargs):
                if args is None:
                    payload = {}
                elif isinstance(args, dict):
                    payload = dict(args)
                else:
                    raise TypeError(f"codemode.{name}() expects a dict of arguments, got {type(args).__name__}")
                payload.update(kwargs)
                return await call(name, payload)

            invoke.__name__ = name
            return invoke

        def __repr__(self):
            return "<codemode proxy>"

    return Codemode()


async def gather(*aws, return_exceptions=False):
    return list(await asyncio.gather(*aws, return_exceptions=return_exceptions))


async def sleep(seconds):
    await asyncio.sleep(seconds)


class Worker:
    def __init__(self, out, inp):
        self._out = out
        self._inp = inp
        self._loop = None
        self._pending = {}
        self._next_id = 0

    def _send(self, line):
        self._out.write(line + "\n")
        self._out.flush()

    def _read_replies(self):
        for raw in iter(self._inp.readline, b""):
            try:
                msg = json.loads(raw)
            except ValueError:
                print("codemode worker: ignoring malformed host message", file=sys.stderr)
                continue
            self._post(self._resolve, msg)
        self._post(self._host_gone)

    def _post(self, fn, *args):
        try:
            self._loop.call_soon_threadsafe(fn, *args)
        except RuntimeError:
            # loop already closed: the run is over
            return

    def _resolve(self, msg):
        fut = self._pending.pop(msg.get("id"), None)
        if fut is not None and not fut.done():
            fut.set_result(msg)

    def _host_gone(self):
        for fut in self._pending.values():
            if not fut.done():
                fut.set_result({"kind": "transport_error", "message": "Host channel closed"})
        self._pending.clear()

    async def _call(self, name, args):
        self._next_id += 1
        call_id = self._next_id
        line = json.dumps({"type": "call", "id": call_id, "name": name, "args": args})
        fut = self._loop.create_future()
        self._pending[call_id] = fut
        self._send(line)
        reply = await fut
        kind = reply.get("kind")
        if kind in ("json", "text"):
            return reply.get("value")
        message = reply.get("message") or "Capability call failed"
        if kind == "transport_error":
            raise TransportError(message)
        raise ApplicationError(message)

    def _fail(self, message, category, trace=None):
        msg = {"type": "result", "ok": False, "error": message, "category": category}
        if trace:
            msg["trace"] = trace
        self._send(json.dumps(msg))

    async def run(self, msg):
        self._loop = asyncio.get_running_loop()
        threading.Thread(target=self._read_replies, name="codemode-replies", daemon=True).start()

        glb = {
            "__builtins__": _restricted_builtins(),
            "__name__": "__codemode__",
            "codemode": _make_proxy(self._call),
            "CapabilityError": CapabilityError,
            "ApplicationError": ApplicationError,
            "TransportError": TransportError,
            "gather": gather,
            "sleep": sleep,
        }
        try:
            exec(compile(msg["source"], "<codemode>", "exec"), glb)
            value = await glb[msg["function"]]()
        except Exception as e:
            self._fail(_error_message(e), _category(e), traceback.format_exc())
            return

        try:
            encoded = json.dumps(value, allow_nan=False)
        except (TypeError, ValueError) as e:
            self._fail(f"Program result is not JSON-serializable: {e}", "execution_error")
            return
        limit = msg.get("max_result_bytes")
        if limit and len(encoded) > limit:
            self._fail(f"Program result exceeds {limit} bytes", "execution_error")
            return
        self._send('{"type": "result", "ok": true, "value": ' + encoded + "}")


def main():
    out = os.fdopen(os.dup(1), "w", encoding="utf-8")
    os.dup2(2, 1)
    inp = sys.stdin.buffer

    first = inp.readline()
    if not first:
        return 1
    msg = json.loads(first)
    _apply_limits(msg.get("limits") or {})
    asyncio.run(Worker(out, inp).run(msg))
    return 0


if __name__ == "__main__":
    sys.exit(main())

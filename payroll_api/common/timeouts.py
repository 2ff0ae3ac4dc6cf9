# payroll_api/common/timeouts.py
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout

# shared pool for outbound collaborator calls (SMTP, PDF rendering)
_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="payroll-io")


class CallTimeout(Exception):
    pass


def call_with_timeout(fn, timeout: float, *args, **kwargs):
    """
    Run fn(*args, **kwargs) on the worker pool and wait at most `timeout` seconds.
    Raises CallTimeout when the deadline passes; the worker keeps running and its
    result is discarded. Exceptions raised by fn propagate unchanged.
    """
    future = _pool.submit(fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        future.cancel()
        raise CallTimeout(f"timed out after {timeout:g} seconds")

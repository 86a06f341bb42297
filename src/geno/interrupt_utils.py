"""Forwarding of KeyboardInterrupt out of worker threads.

Compiles run on a thread pool. A Ctrl-C that lands inside a worker would
otherwise only end that worker, so the handler below re-raises it in the
main thread as well.
"""

import _thread


def handle_keyboard_interrupt_properly(ke: KeyboardInterrupt) -> None:
    """Interrupt the main thread, then re-raise the given KeyboardInterrupt.

    Usage:
        try:
            subprocess.run(cmd)
        except KeyboardInterrupt as ke:
            handle_keyboard_interrupt_properly(ke)

    Args:
        ke: The KeyboardInterrupt caught by the caller

    Raises:
        KeyboardInterrupt: Always
    """
    _thread.interrupt_main()
    raise ke

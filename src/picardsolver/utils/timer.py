########################################################################################
##
##                                  WALL CLOCK TIMER
##                                 (utils/timer.py)
##
########################################################################################

# IMPORTS ==============================================================================

import time


# CLASS ================================================================================

class Timer:
    """Tick based wall clock timer for solver diagnostics.

    Every call to ``tick`` records a timestamp, ``last`` returns the time
    between the two most recent ticks and ``elapsed`` the time since the
    first tick.

    Example
    -------
    .. code-block:: python

        T = Timer()
        T.tick()
        ...
        T.tick()
        print(T.last())
    """

    def __init__(self):
        self._t_start = None
        self._t_prev = None
        self._t_last = None


    def reset(self):
        self._t_start = None
        self._t_prev = None
        self._t_last = None


    def tick(self):
        """Record a timestamp.

        Returns
        -------
        t : float
            time since the first tick in seconds
        """

        t = time.perf_counter()

        if self._t_start is None:
            self._t_start = t

        self._t_prev = self._t_last if self._t_last is not None else t
        self._t_last = t

        return t - self._t_start


    def last(self):
        """Time between the two most recent ticks in seconds."""
        if self._t_last is None:
            return 0.0
        return self._t_last - self._t_prev


    def elapsed(self):
        """Time since the first tick in seconds."""
        if self._t_start is None:
            return 0.0
        return time.perf_counter() - self._t_start

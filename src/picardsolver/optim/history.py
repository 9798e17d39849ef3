########################################################################################
##
##                           BOUNDED ITERATION HISTORY
##                              (optim/history.py)
##
########################################################################################

# IMPORTS ==============================================================================

import numpy as np


# CLASS ================================================================================

class IterationHistory:
    """Bounded, insertion ordered store of the most recent solution iterates.

    Implemented as a ring buffer over a preallocated ``(size, ndof)`` array.
    Logical position ``i`` (oldest first) lives in row ``(head + i) % size``,
    so pushing into a full buffer overwrites the oldest row and advances
    ``head`` without moving any data.

    Used by the picard solver to feed the anderson mixer. The buffer is
    owned by a single solve and has to be released when that solve ends,
    either explicitly through ``release`` or by using it as a context
    manager.

    Example
    -------
    .. code-block:: python

        with IterationHistory(3, ndof=2) as H:
            for v in iterates:
                H.push(v)
            V = H.vectors()   # oldest first

    Parameters
    ----------
    size : int
        maximum number of stored vectors 'M'
    ndof : int
        length of each stored vector
    dtype : numpy.dtype
        scalar type of the stored vectors
    """

    def __init__(self, size, ndof, dtype=float):

        if size < 1:
            raise ValueError(f"history size must be at least one, got '{size}'")

        self.size = size
        self.ndof = ndof

        #preallocated storage, rows are reused in rotation
        self._data = np.zeros((size, ndof), dtype=dtype)

        #row of the oldest entry and number of stored entries
        self._head = 0
        self._count = 0


    def __len__(self):
        return self._count


    def __getitem__(self, i):

        self._check_alive()

        if i < 0:
            i += self._count

        if not 0 <= i < self._count:
            raise IndexError(f"history index '{i}' out of range for {self._count} entries")

        return self._data[(self._head + i) % self.size]


    def __iter__(self):
        for i in range(self._count):
            yield self[i]


    def __enter__(self):
        return self


    def __exit__(self, exc_type, exc_value, traceback):
        self.release()


    @property
    def is_full(self):
        return self._count == self.size


    @property
    def released(self):
        return self._data is None


    def _check_alive(self):
        if self._data is None:
            raise RuntimeError("iteration history has already been released")


    def push(self, v):
        """Store a copy of a new iterate, evicting the oldest one if the
        buffer is full.

        Parameters
        ----------
        v : array[numeric]
            new iterate of length 'ndof'
        """

        self._check_alive()

        _v = np.asarray(v)

        if _v.shape != (self.ndof,):
            raise ValueError(f"expected vector of shape ({self.ndof},), got {_v.shape}")

        #upcast storage, e.g. real history receiving complex iterates
        dtype = np.result_type(self._data.dtype, _v.dtype)
        if dtype != self._data.dtype:
            self._data = self._data.astype(dtype)

        if self._count < self.size:

            #not full yet, write behind the newest entry
            self._data[(self._head + self._count) % self.size] = _v
            self._count += 1

        else:

            #full, overwrite the oldest entry which becomes the newest
            self._data[self._head] = _v
            self._head = (self._head + 1) % self.size


    def vectors(self):
        """Stored vectors in insertion order (oldest first).

        Returns
        -------
        V : array[numeric]
            array of shape ``(len(self), ndof)``
        """

        self._check_alive()

        idx = (self._head + np.arange(self._count)) % self.size
        return self._data[idx]


    def clear(self):
        """Forget all stored vectors but keep the storage."""

        self._check_alive()

        self._head = 0
        self._count = 0


    def release(self):
        """Drop the storage. Calling this more than once is allowed."""

        self._data = None
        self._head = 0
        self._count = 0

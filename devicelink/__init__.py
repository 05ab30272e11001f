"""
Cross-device sign-in for devices that cannot sign users in themselves.

A device with limited input (for example, a car head unit) displays a session
id, typically as a scannable code. The user signs in on a phone or browser,
which initializes and then completes the session under their identity. The
displaying device polls the session's status and, once it has succeeded,
receives a signed developer token for the downstream music API.

.. code-block:: text

   head unit                service                      phone
       |                       |   POST /session/initialize  |
       |                       | <-------------------------- |
       |  GET /session/status  |                             |
       | --------------------> |   POST /session/complete    |
       |        pending        | <-------------------------- |
       |  GET /session/status  |                             |
       | --------------------> |                             |
       |  success + credential |                             |

Sessions are held in Redis (:mod:`.services.session_store`) and removed after
they expire by a Celery beat task (:mod:`.tasks`). Requests are rate limited
per session id or user (:mod:`.services.ratelimit`); the limits are local to
each process.
"""

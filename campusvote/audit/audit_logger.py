# campusvote/audit/audit_logger.py

import os
import json
import hashlib
import base64
import logging
import threading
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from campusvote.operations.time_sync import isoformat, utcnow

logger = logging.getLogger(__name__)

# Append-only audit trail of logins, votes and admin actions, with hash
# chaining and Ed25519 signatures. The signing key lives for the process, so
# signatures verify only within the process that wrote them.


class AuditLogger:
    def __init__(self, log_dir='logs'):
        self.log_dir = log_dir
        self.log_file = os.path.join(log_dir, 'audit.log')
        self.previous_hash = None
        self._lock = threading.Lock()

        os.makedirs(log_dir, exist_ok=True)

        self.signing_key = Ed25519PrivateKey.generate()
        self._load_previous_hash()

    def _load_previous_hash(self):
        if not os.path.exists(self.log_file):
            return
        with open(self.log_file, 'r') as f:
            lines = [line for line in f if line.strip()]
        if lines:
            try:
                self.previous_hash = json.loads(lines[-1]).get('hash')
            except ValueError:
                self.previous_hash = None

    def log_event(self, event_type, data, actor=None):
        """Write one entry. Failures are logged, never raised to the caller."""
        try:
            with self._lock:
                log_entry = {
                    "timestamp": isoformat(utcnow()),
                    "event_type": event_type,
                    "data": data,
                    "actor": actor,
                    "previous_hash": self.previous_hash,
                }
                entry_json = json.dumps(log_entry, sort_keys=True)
                entry_hash = hashlib.sha256(entry_json.encode()).hexdigest()
                log_entry['hash'] = entry_hash

                signature = self.signing_key.sign(entry_json.encode())
                log_entry['signature'] = base64.b64encode(signature).decode()

                with open(self.log_file, 'a') as f:
                    f.write(json.dumps(log_entry) + "\n")

                self.previous_hash = entry_hash
        except (OSError, TypeError, ValueError) as e:
            logger.error("Audit log error for %s: %s", event_type, e)

    def read_entries(self, newest_first=True):
        entries = []
        if not os.path.exists(self.log_file):
            return entries
        with open(self.log_file, 'r') as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(json.loads(line))
                except ValueError:
                    entries.append({'raw': line})
        if newest_first:
            entries.reverse()
        return entries

    def verify_log_integrity(self):
        if not os.path.exists(self.log_file):
            return True
        public_key = self.signing_key.public_key()
        previous_hash = None
        try:
            with open(self.log_file, 'r') as f:
                for line in f:
                    if not line.strip():
                        continue
                    log_entry = json.loads(line)
                    if log_entry.get('previous_hash') != previous_hash:
                        return False
                    entry_copy = dict(log_entry)
                    signature = base64.b64decode(entry_copy.pop('signature'))
                    entry_hash = entry_copy.pop('hash')
                    entry_json = json.dumps(entry_copy, sort_keys=True).encode()
                    if hashlib.sha256(entry_json).hexdigest() != entry_hash:
                        return False
                    public_key.verify(signature, entry_json)
                    previous_hash = entry_hash
        except (InvalidSignature, KeyError, ValueError):
            return False
        return True

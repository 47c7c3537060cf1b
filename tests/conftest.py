"""
Shared fixtures: an in-memory SFTP server standing in for paramiko
"""
import errno
import io
import shlex
import stat
from types import SimpleNamespace
from unittest import mock

import paramiko
import pytest

from sftps.core.client import SecureFtp
from sftps.core.params import ConnectionParams


class FakeRemoteFile(io.BytesIO):
    """Remote file handle; written content lands in the fake filesystem on close"""

    def __init__(self, fs, path, data=b"", writable=False):
        super().__init__(data)
        self._fs = fs
        self._path = path
        self._writable = writable

    def close(self):
        if self._writable and not self.closed:
            self._fs.files[self._path] = self.getvalue()
        super().close()


class FakeSFTP:
    """Minimal SFTPClient over a dict of files and a set of directories"""

    def __init__(self, fs):
        self.fs = fs
        self.close = mock.Mock()

    def _missing(self, path):
        return FileNotFoundError(errno.ENOENT, "No such file", path)

    def open(self, path, mode="r"):
        if "w" in mode:
            if self.fs.parent(path) not in self.fs.dirs:
                raise self._missing(path)
            self.fs.files[path] = b""
            return FakeRemoteFile(self.fs, path, writable=True)
        if path not in self.fs.files:
            raise self._missing(path)
        return FakeRemoteFile(self.fs, path, self.fs.files[path])

    def stat(self, path):
        if path in self.fs.files:
            return SimpleNamespace(st_size=len(self.fs.files[path]), st_mode=stat.S_IFREG | 0o644)
        return self.lstat(path)

    def getfo(self, remotepath, fl):
        self.stat(remotepath)
        with self.open(remotepath, "rb") as fr:
            data = fr.read()
        fl.write(data)
        return len(data)

    def putfo(self, fl, remotepath, confirm=True):
        with self.open(remotepath, "wb") as fw:
            size = fw.write(fl.read())
        attrs = self.stat(remotepath)
        if confirm and attrs.st_size != size:
            raise OSError(f"size mismatch in put!  {attrs.st_size} != {size}")
        return attrs

    def mkdir(self, path):
        if path in self.fs.dirs or path in self.fs.files:
            raise OSError(errno.EEXIST, "Failure")
        if self.fs.parent(path) not in self.fs.dirs:
            raise self._missing(path)
        self.fs.dirs.add(path)

    def lstat(self, path):
        if path in self.fs.dirs:
            return SimpleNamespace(st_mode=stat.S_IFDIR | 0o755)
        if path in self.fs.links:
            return SimpleNamespace(st_mode=stat.S_IFLNK | 0o777)
        if path in self.fs.files:
            return SimpleNamespace(st_mode=stat.S_IFREG | 0o644)
        raise self._missing(path)

    def remove(self, path):
        if path in self.fs.links:
            del self.fs.links[path]
        elif path in self.fs.files:
            del self.fs.files[path]
        else:
            raise self._missing(path)

    def rmdir(self, path):
        if any(self.fs.parent(p) == path for p in self.fs.entries()):
            raise OSError(errno.ENOTEMPTY, "Failure")
        self.fs.dirs.discard(path)

    def rename(self, old, new):
        if old in self.fs.files:
            self.fs.files[new] = self.fs.files.pop(old)
        elif old in self.fs.dirs:
            self.fs.dirs.remove(old)
            self.fs.dirs.add(new)
        else:
            raise self._missing(old)

    def symlink(self, source, dest):
        if dest in self.fs.entries():
            raise OSError(errno.EEXIST, "Failure")
        self.fs.links[dest] = source


class FakeFilesystem:
    def __init__(self):
        self.files = {}
        self.dirs = {"/", "/home", "/home/user"}
        self.links = {}

    @staticmethod
    def parent(path):
        head = path.rsplit("/", 1)[0]
        return head or "/"

    def entries(self):
        return set(self.files) | self.dirs | set(self.links)

    def listing(self, path):
        """Render `ls -al` output for a directory"""
        if path not in self.dirs:
            return None
        lines = ["total 8", "drwxr-xr-x 2 user user 4096 Jan  1 00:00 .",
                 "drwxr-xr-x 3 user user 4096 Jan  1 00:00 .."]
        for entry in sorted(p for p in self.entries() if p != path and self.parent(p) == path):
            name = entry.rsplit("/", 1)[1]
            if entry in self.dirs:
                lines.append(f"drwxr-xr-x 2 user user 4096 Jan  1 00:00 {name}")
            elif entry in self.links:
                lines.append(f"lrwxrwxrwx 1 user user 4 Jan  1 00:00 {name} -> {self.links[entry]}")
            else:
                size = len(self.files[entry])
                lines.append(f"-rw-r--r-- 1 user user {size} Jan  1 00:00 {name}")
        return "\n".join(lines) + "\n"


class FakeSSHClient:
    """Stands in for paramiko.SSHClient, serving `ls -al` from the fake filesystem"""

    def __init__(self, fs):
        self.fs = fs
        self.sftp = FakeSFTP(fs)
        self.policy = None
        self.connect_kwargs = None
        self.connect_error = None
        self.open_sftp_error = None
        self.commands = []
        self.loaded_host_keys = []
        self.close = mock.Mock()

    def set_missing_host_key_policy(self, policy):
        self.policy = policy

    def load_system_host_keys(self, filename=None):
        self.loaded_host_keys.append("system")

    def load_host_keys(self, filename):
        self.loaded_host_keys.append(filename)

    def connect(self, **kwargs):
        self.connect_kwargs = kwargs
        if self.connect_error is not None:
            raise self.connect_error

    def open_sftp(self):
        if self.open_sftp_error is not None:
            raise self.open_sftp_error
        return self.sftp

    def exec_command(self, command):
        self.commands.append(command)
        argv = shlex.split(command)
        output = self.fs.listing(argv[-1])
        if output is None:
            out = b""
            err = f"ls: cannot access '{argv[-1]}': No such file or directory\n".encode()
            status = 2
        else:
            out, err, status = output.encode(), b"", 0
        channel = SimpleNamespace(recv_exit_status=lambda: status)
        stdout = SimpleNamespace(read=lambda: out, channel=channel)
        stderr = SimpleNamespace(read=lambda: err, channel=channel)
        return None, stdout, stderr


@pytest.fixture
def fs():
    return FakeFilesystem()


@pytest.fixture
def ssh_client(fs, monkeypatch):
    """Patch paramiko.SSHClient and the socket layer used by the client"""
    client = FakeSSHClient(fs)
    monkeypatch.setattr(paramiko, "SSHClient", lambda: client)
    monkeypatch.setattr(
        "sftps.core.client.socket.getaddrinfo",
        lambda host, port, type=0: [(2, 1, 6, "", ("192.0.2.10", port))],
    )
    sock = mock.Mock(name="socket")
    monkeypatch.setattr("sftps.core.client.socket.create_connection", mock.Mock(return_value=sock))
    client.sock = sock
    return client


@pytest.fixture
def params():
    return ConnectionParams(host="sftp.example.com", user="user", password="secret")


@pytest.fixture
def ftp(params, ssh_client):
    session = SecureFtp(params)
    session.connect()
    yield session
    session.quit()


@pytest.fixture(scope="session")
def rsa_key():
    return paramiko.RSAKey.generate(bits=2048)


@pytest.fixture(scope="session")
def rsa_key_text(rsa_key):
    buf = io.StringIO()
    rsa_key.write_private_key(buf)
    return buf.getvalue()

# Copyright (C) 2026 IBM, Inc.
#
# This program is free software: you can redistribute it and/or modify it under
# the terms of the GNU General Public License as published by the Free Software
# Foundation, either version 3 of the License, or (at your option) any later
# version.
#
# This program is distributed in the hope that it will be useful, but WITHOUT ANY
# WARRANTY; without even the implied warranty of MERCHANTABILITY or FITNESS FOR A
# PARTICULAR PURPOSE.  See the GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along with
# this program.  If not, see <https://www.gnu.org/licenses/>.


import binascii
import io
import logging
import os

import paramiko

KEY_FILE_MODE = 0o600


def random_id():
    return binascii.b2a_hex(os.urandom(32)).decode("utf-8")


def sanitize_key_pair_name(name):
    # Nova rejects '.' in key pair names
    return name.replace(".", "_")


def write_key_file(path, data):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    if isinstance(data, str):
        data = data.encode("utf-8")
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, KEY_FILE_MODE)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    # O_CREAT only applies the mode to new files
    os.chmod(path, KEY_FILE_MODE)


def generate_ssh_key(path, bits=2048):
    """
    Generate an RSA key pair at path / path.pub and return the public key
    in OpenSSH format.
    """
    logging.debug(f"generating {bits} bit RSA key at {path}")
    key = paramiko.RSAKey.generate(bits)
    with io.StringIO() as buf:
        key.write_private_key(buf)
        write_key_file(path, buf.getvalue())
    public_key = f"{key.get_name()} {key.get_base64()}\n"
    write_key_file(path + ".pub", public_key)
    return public_key
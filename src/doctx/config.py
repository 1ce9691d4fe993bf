""" Client configuration. Settings for each database live in a JSON file
    under the doctx configuration directory; anything not set there falls
    back to the defaults defined here, and a handful of settings can be
    overridden from the environment.
"""

import os
import threading

from . import json
from .errors import ArgumentError


_cache = dict()
_cache_lock = threading.Lock()


defaults = dict()
defaults['project'] = 'default'
defaults['address'] = 'localhost'
defaults['port'] = 10079
defaults['timeout'] = 60.0
defaults['ack_timeout'] = 0.1
defaults['max_attempts'] = 5
defaults['request_retries'] = 3
defaults['retry_delay'] = 0.1
defaults['backoff_initial'] = 0.0
defaults['backoff_multiplier'] = 1.5
defaults['backoff_max'] = 5.0

environment = dict()
environment['DOCTX_PROJECT'] = 'project'
environment['DOCTX_ADDRESS'] = 'address'
environment['DOCTX_PORT'] = 'port'


class Configuration:
    """ A convenience class to represent the configuration for a single
        *database*. An instance acts like a read-only dictionary; the
        known keys are exactly those in :data:`defaults`.
    """

    def __init__(self, database, load=True):

        self.database = database
        self._values = dict(defaults)

        if load == True:
            self.load()


    def __contains__(self, key):
        return key in self._values


    def __getitem__(self, key):
        return self._values[key]


    def __len__(self):
        return len(self._values)


    def __repr__(self):
        return 'config.Configuration(%r): %r' % (self.database, self._values)


    def keys(self):
        return self._values.keys()


    def filename(self):
        """ Return the path to the JSON file holding the configuration for
            this database. The file is not required to exist.
        """

        return os.path.join(directory(), 'client', self.database + '.json')


    def load(self):
        """ Load the configuration for this database from disk, if present,
            then apply any environment overrides on top of it.
        """

        filename = self.filename()

        if os.path.exists(filename):
            with open(filename, 'rb') as contents:
                raw = contents.read()

            block = json.loads(raw)

            if not isinstance(block, dict):
                raise ArgumentError('configuration in %s is not a JSON object' % (filename))

            self.update(block)

        overrides = dict()
        for variable,key in environment.items():
            try:
                overrides[key] = os.environ[variable]
            except KeyError:
                pass

        self.update(overrides)


    def update(self, block):
        """ Update the configuration with the key/value pairs in *block*.
            Each value is coerced to the type of its default; an unknown
            key, or a value that cannot be coerced, is an error.
        """

        coerced = dict()

        for key,value in block.items():
            try:
                default = defaults[key]
            except KeyError:
                raise ArgumentError('unknown configuration key: ' + repr(key))

            try:
                value = type(default)(value)
            except (TypeError, ValueError):
                error = 'configuration key %r expects %s, got %r'
                error = error % (key, type(default).__name__, value)
                raise ArgumentError(error)

            coerced[key] = value

        self._values.update(coerced)


# end of class Configuration



def directory(default=None):
    """ Return the directory location where configuration files are loaded
        from. This defaults to ``$HOME/.doctx``, but can be overridden by
        calling this method with an absolute path, or by setting the
        ``DOCTX_HOME`` environment variable before the first invocation of
        this method.
    """

    if default is not None:
        default = str(default)
        default = os.path.expandvars(default)

        if not os.path.isabs(default):
            raise ArgumentError('the default directory must be an absolute path')

        os.environ['DOCTX_HOME'] = default
        directory.found = default

    found = directory.found

    if found is not None:
        return found

    try:
        found = os.environ['DOCTX_HOME']
    except KeyError:
        pass
    else:
        directory.found = found
        return found

    found = os.path.join(os.path.expanduser('~'), '.doctx')

    directory.found = found
    return found

directory.found = None



def get(database):
    """ Retrieve the cached :class:`Configuration` instance for the
        specified *database*, loading it on first use.
    """

    try:
        config = _cache[database]
    except KeyError:
        with _cache_lock:
            try:
                config = _cache[database]
            except KeyError:
                config = Configuration(database)
                _cache[database] = config

    return config



def clear():
    """ Discard all cached :class:`Configuration` instances, and forget the
        configuration directory, so that subsequent calls re-read both.
    """

    with _cache_lock:
        _cache.clear()

    directory.found = None


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:

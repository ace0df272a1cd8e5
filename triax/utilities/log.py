#
# @file log.py
# @author Mit Bailey (mitbailey@outlook.com)
# @brief Coloured terminal and file logging for the TRIAX driver.
# @version See Git tags for version information.
# @date 2026.10.19
#
# @copyright Copyright (c) 2026
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
#
#

import configparser as confp
import datetime
import inspect
import os
import threading
import time
from termcolor import colored

import triax

LOG_LEVEL_TERMINAL = 1
LOG_LEVEL_FILE = 0
MAX_DIR_SIZE = 1000 # Number of log files kept.
TRACE = False

DEBUG_LL = 0
TRACE_LL = 0
INFO_LL = 1
WARN_LL = 2
ERROR_LL = 3
FATAL_LL = 4

_COLORS = {
    '[DEBUG]': ('blue', None),
    '[TRACE]': ('grey', ['bold']),
    '[INFO ]': ('green', None),
    '[WARN ]': ('yellow', None),
    '[ERROR]': ('red', None),
    '[FATAL]': ('red', ['bold', 'reverse']),
}

_logfile = None
# Both the terminal and the file are shared by the serial and GPIB worker threads.
_out_lock = threading.Lock()

def register(cfg_path: str = 'log.cfg', logdir: str = 'logs'):
    """ Reads the optional log configuration and opens a new log file.

    The configuration is an INI file with a [LOG] section holding
    LOG_LEVEL_TERMINAL, LOG_LEVEL_FILE and MAX_DIR_SIZE.

    Args:
        cfg_path (str, optional): Path of the log configuration file. Defaults to 'log.cfg'.
        logdir (str, optional): Directory where log files are written. Defaults to 'logs'.
    """
    global LOG_LEVEL_TERMINAL
    global LOG_LEVEL_FILE
    global MAX_DIR_SIZE
    global _logfile

    cfg_found = False
    if os.path.isfile(cfg_path):
        cfg = confp.ConfigParser()
        cfg.optionxform = str
        try:
            cfg.read(cfg_path)
            LOG_LEVEL_TERMINAL = cfg.getint('LOG', 'LOG_LEVEL_TERMINAL', fallback=LOG_LEVEL_TERMINAL)
            LOG_LEVEL_FILE = cfg.getint('LOG', 'LOG_LEVEL_FILE', fallback=LOG_LEVEL_FILE)
            MAX_DIR_SIZE = cfg.getint('LOG', 'MAX_DIR_SIZE', fallback=MAX_DIR_SIZE)
            cfg_found = True
        except (confp.Error, ValueError) as e:
            print('Log configuration file format invalid:', e)

    if not os.path.isdir(logdir):
        os.makedirs(logdir)
    else:
        file_list = sorted(os.listdir(logdir))
        for filename in file_list[:-MAX_DIR_SIZE]:
            os.remove(os.path.join(logdir, filename))

    logname = time.strftime('%Y%m%dT%H%M%S')
    try:
        _logfile = open(os.path.join(logdir, '%s_triax_%s.txt'%(logname, triax.__version__)), 'a')
    except OSError as e:
        _logfile = None
        error('Failed to open log file. This is most likely due to a lack of privileges. Exception reported as:', e)
        return

    info('Logger initialized. Terminal log level: %d; File log level: %d.'%(LOG_LEVEL_TERMINAL, LOG_LEVEL_FILE))
    if cfg_found:
        info('Log configuration file found.')
    else:
        warn('No log configuration file found.')

def logging_to_file():
    return _logfile is not None

def debug(*arg):
    if LOG_LEVEL_TERMINAL <= DEBUG_LL or LOG_LEVEL_FILE <= DEBUG_LL:
        _out('[DEBUG]', arg, DEBUG_LL)

def trace(*arg):
    if TRACE:
        _out('[TRACE]', arg, TRACE_LL, _t = True)

def info(*arg):
    if LOG_LEVEL_TERMINAL <= INFO_LL or LOG_LEVEL_FILE <= INFO_LL:
        _out('[INFO ]', arg, INFO_LL)

def warn(*arg):
    if LOG_LEVEL_TERMINAL <= WARN_LL or LOG_LEVEL_FILE <= WARN_LL:
        _out('[WARN ]', arg, WARN_LL)

def error(*arg):
    if LOG_LEVEL_TERMINAL <= ERROR_LL or LOG_LEVEL_FILE <= ERROR_LL:
        _out('[ERROR]', arg, ERROR_LL)

def fatal(*arg):
    if LOG_LEVEL_TERMINAL <= FATAL_LL or LOG_LEVEL_FILE <= FATAL_LL:
        _out('[FATAL]', arg, FATAL_LL)

def _caller(depth: int) -> str:
    frame = inspect.stack()[depth]
    filename = os.path.basename(frame.filename)
    return '[%s:%d | %s]'%(filename, frame.lineno, frame.function)

def _out(_l, _m, _ll, _t = False):
    # Stack: _out <- level function <- caller.
    flf = _caller(3).ljust(50, ' ')

    cstack = ''
    if _t:
        stack = inspect.stack()
        objs = ['[%s:%d | %s]'%(os.path.basename(f.filename), f.lineno, f.function) for f in stack[2:]]
        cstack = '->\n\t'.join(objs[::-1])

    out = '%s %s'%(_l, flf)
    if len(cstack) > 0:
        out += ' ' + cstack
    if len(_m) > 0:
        out += ' ' + ' '.join(str(m) for m in _m)
    out += '\n'

    # Timestamps give a general duration between lines; ordering across threads is not guaranteed.
    ts = datetime.datetime.now().time().strftime('%H:%M:%S.%f')

    with _out_lock:
        if _logfile is not None and LOG_LEVEL_FILE <= _ll:
            _logfile.write(ts + ' ' + out)
            _logfile.flush()

        if LOG_LEVEL_TERMINAL <= _ll:
            color, attrs = _COLORS[_l]
            print(ts + ' ' + colored(_l, color, attrs=attrs) + out[len(_l):], end='')

def finish():
    global _logfile
    info('Program complete; logger closing log file.')
    if _logfile is not None:
        _logfile.close()
        _logfile = None

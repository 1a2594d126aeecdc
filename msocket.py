import socket
import multiprocessing.connection

import config


def get_network_ip():
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    s.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
    s.connect(('<broadcast>', 0))
    return s.getsockname()[0]


class Listener(multiprocessing.connection.Listener):
    '''
    pickled-message listener that can be passed to select()
    '''
    def __init__(self, ip, port, authkey=None):
        multiprocessing.connection.Listener.__init__(
            self, address=(ip, port), authkey=authkey or config.SERVER_AUTHKEY)

    def fileno(self):
        return self._listener._socket.fileno()


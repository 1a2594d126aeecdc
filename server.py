# standard library imports
import time
import select
import sys
import traceback

# local imports
import config
import logutil
import msocket
from events import DigEvent, MoveEvent
from game import LifeGame, Accept
from players import ClientSession


def start_server(ip, port):
    config.SERVER_IP = ip
    config.SERVER_PORT = port
    Server()


class Peer(object):
    '''
    a raw connection; `session` is set once the game admits it
    '''
    def __init__(self, conn):
        self.conn = conn
        self.session = None
        self.comms_queue = []
        self.closing = False

    def __repr__(self):
        return f"Peer({self.session!r})"


class ServerConnectionHandler(object):
    '''
    Handles the low level connection details of the life server: accepting
    connections, turning client messages into game calls and input events,
    and flushing each player's outgoing messages.

    Client Messages
        status()
            replies `status` with the server list ping
        join(name)
            asks for a slot; replies `connected` or `rejected`
        dig(position)
            queues a DigEvent for the next tick
        set_position(position, yaw, pitch)
            queues a MoveEvent for the next tick
        quit()
            disconnects; the slot is freed on the next tick
    '''
    def __init__(self, game, listener=None):
        self.game = game
        self.listener = listener
        self.peers = []
        self.tick = 0
        self.fn_dict = {}
        self.register_function('status', self.status)
        self.register_function('join', self.join)
        self.register_function('dig', self.dig)
        self.register_function('set_position', self.set_position)
        self.register_function('quit', self.quit)

    def register_function(self, name, fn):
        self.fn_dict[name] = fn

    def call_function(self, name, *args):
        return self.fn_dict[name](*args)

    def connections(self):
        return [p.conn for p in self.peers]

    def connections_with_comms(self):
        return [p.conn for p in self.peers if len(p.comms_queue) > 0]

    def peer_from_connection(self, conn):
        for p in self.peers:
            if conn == p.conn:
                return p

    def accept_connection(self):
        conn = self.listener.accept()
        if len(self.peers) >= self.game.max_connections():
            logutil.log("SERVER", "connection limit reached, closing new connection", level="WARN")
            conn.close()
            return None
        peer = Peer(conn)
        self.peers.append(peer)
        return peer

    def drop_peer(self, peer):
        if peer.session is not None:
            peer.session.disconnect()
        try:
            peer.conn.close()
        except OSError:
            pass
        if peer in self.peers:
            self.peers.remove(peer)

    def handle_message(self, peer, msg, data):
        logutil.log("SERVER", f"received {msg} from {peer}", level="DEBUG")
        if msg not in self.fn_dict:
            logutil.log("SERVER", f"unknown message {msg} from {peer}", level="WARN")
            return
        try:
            self.call_function(msg, peer, *data)
        except Exception:
            traceback.print_exc()

    def status(self, peer):
        peer.comms_queue.append(['status', None, (self.game.server_list_ping(),)])

    def join(self, peer, name):
        if peer.session is not None:
            return
        result = self.game.on_join_attempt(name, peer.conn)
        if isinstance(result, Accept):
            peer.session = result.session
            others = [ClientSession(p.session) for p in self.peers if p.session is not None]
            peer.comms_queue.append(['connected', peer.session.id, (ClientSession(peer.session), others)])
            print(f"SERVER: player {peer.session.id} ({name}) connected")
        else:
            peer.comms_queue.append(['rejected', None, (result.reason,)])
            peer.closing = True

    def dig(self, peer, position):
        if peer.session is not None:
            peer.session.push_event(DigEvent(position))

    def set_position(self, peer, position, yaw=None, pitch=None):
        if peer.session is not None:
            peer.session.push_event(MoveEvent(position, yaw, pitch))

    def quit(self, peer):
        logutil.log("SERVER", f"{peer} requested disconnect")
        if peer.session is not None:
            print(f"SERVER: player {peer.session.id} disconnected")
        self.drop_peer(peer)

    def run_tick(self):
        '''
        advances the game one tick and moves queued session messages to
        their connections
        '''
        self.tick += 1
        self.game.on_tick(self.tick)
        for peer in self.peers:
            if peer.session is not None and peer.session.comms_queue:
                peer.comms_queue.extend(peer.session.comms_queue)
                peer.session.comms_queue = []

    def dispatch_top_message(self, peer):
        message = peer.comms_queue.pop(0)
        logutil.log("SERVER", f"sending {message[0]} to {peer}", level="DEBUG")
        peer.conn.send(message)
        if peer.closing and not peer.comms_queue:
            self.drop_peer(peer)

    def serve(self):
        period = 1.0 / config.TICKS_PER_SEC
        next_tick = time.perf_counter() + period
        while True:
            timeout = max(0.0, next_tick - time.perf_counter())
            try:
                r, w, x = select.select([self.listener] + self.connections(),
                                        self.connections_with_comms(), [], timeout)
            except KeyboardInterrupt:
                logutil.log("SERVER", "received keyboard interrupt", level="WARN")
                break
            for p in list(self.peers):
                if p.conn in r:
                    try:
                        msg, data = p.conn.recv()
                    except (EOFError, OSError):
                        logutil.log("SERVER", f"disconnect EOF for {p}", level="WARN")
                        self.drop_peer(p)
                        continue
                    except (TypeError, ValueError):
                        logutil.log("SERVER", f"malformed message from {p}", level="WARN")
                        continue
                    self.handle_message(p, msg, data)
            for p in list(self.peers):
                if p.conn in w and p.comms_queue:
                    try:
                        self.dispatch_top_message(p)
                    except (EOFError, OSError):
                        self.drop_peer(p)
            if self.listener in r:
                p = self.accept_connection()
                if p is not None:
                    logutil.log("SERVER", f"accepted connection {len(self.peers)}/{self.game.max_connections()}")
            if time.perf_counter() >= next_tick:
                self.run_tick()
                next_tick += period
                # fall behind rather than burst after a long stall
                next_tick = max(next_tick, time.perf_counter())
        self.listener.close()


class Server(object):
    '''
    Multiplayer life server: one LifeGame behind a ServerConnectionHandler.
    '''
    def __init__(self, game=None):
        logutil.log("SERVER", f"starting server at {config.SERVER_IP}:{config.SERVER_PORT}")
        self.game = game if game is not None else LifeGame()
        self.game.on_init()
        listener = msocket.Listener(config.SERVER_IP, config.SERVER_PORT)
        self.handler = ServerConnectionHandler(self.game, listener)
        print(f"SERVER: listening on {config.SERVER_IP}:{config.SERVER_PORT}")
        try:
            self.handler.serve()
        finally:
            logutil.log("SERVER", "shutting down")
            self.game.close()


if __name__ == '__main__':
    if len(sys.argv) > 1:
        if sys.argv[1] == 'LAN':
            config.SERVER_IP = msocket.get_network_ip()
        elif ':' in sys.argv[1]:
            host, port = sys.argv[1].split(':', 1)
            config.SERVER_IP = host
            try:
                config.SERVER_PORT = int(port)
            except ValueError:
                pass
        else:
            config.SERVER_IP = sys.argv[1]
    s = Server()

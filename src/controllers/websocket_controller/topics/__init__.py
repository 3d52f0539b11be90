from .receivers.lifecycle import init as init_lifecycle
from .receivers.waiting import init as init_waiting
from .receivers.paired import init as init_paired
from .receivers.session_description import init_offer, init_answer
from .receivers.ice_candidate import init as init_ice_candidate
from .receivers.peer_left import init as init_peer_left


def initialize_all(channel, session):

    # Initialize all topic receivers
    init_lifecycle(channel, session)
    init_waiting(channel, session)
    init_paired(channel, session)
    init_offer(channel, session)
    init_answer(channel, session)
    init_ice_candidate(channel, session)
    init_peer_left(channel, session)

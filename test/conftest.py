import pytest

from babygrad import config, graph


@pytest.fixture(autouse=True)
def fresh_default_graph():
    """
    Give every test its own default arena and engine config, so tensors built
    by one test never share an arena with another's.
    """
    previous = config.set_config(config.EngineConfig())
    graph.reset_default_graph()

    yield

    graph.reset_default_graph()
    config.set_config(previous)

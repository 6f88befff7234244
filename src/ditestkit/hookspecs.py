"""Hooks conftest.py files can implement to take part in container builds."""


def pytest_ditestkit_configurator(configurator, module):
    """Called before each container compile, after config files are added.

    :param ditestkit.di.Configurator configurator: builder for the new container
    :param ditestkit.module.ContainerModule module: the active container module
    """


def pytest_ditestkit_container(container, module):
    """Called after each container compile, before tests receive it.

    :param ditestkit.di.Container container: the freshly compiled container
    :param ditestkit.module.ContainerModule module: the active container module
    """

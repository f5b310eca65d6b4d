"""
Tests for the controller base class and runtime extensions.
"""

from erpia_core.plugin_runtime import deploy, namespaces
from erpia_core.template.controller import Controller
from erpia_core.template.extension import ExtensionMixin


class Page(Controller, ExtensionMixin):
    pass


class ChildPage(Page):
    pass


class Quiet:
    def load_data(self, controller, code):
        return None


class Loud:
    def load_data(self, controller, code):
        return f'{controller.class_name}:{code}'

    def save(self, controller):
        return False


class NotCallable:
    load_data = 'nope'


def test_default_page_data():
    data = Controller('ListThings').get_page_data()
    assert data['name'] == 'ListThings'
    assert data['menu'] == 'new'
    assert data['ordernum'] == 100
    assert Controller('ListThings').uri == '/ListThings'


def test_pipe_returns_first_answer():
    Page.add_extension(NotCallable())
    Page.add_extension(Quiet())
    Page.add_extension(Loud())
    assert Page('Page').pipe('load_data', 'A') == 'Page:A'
    assert Page('Page').pipe('missing') is None


def test_extensions_follow_the_class_hierarchy():
    Page.add_extension(Loud())
    assert len(ChildPage.extensions()) == 1
    assert ChildPage('ChildPage').pipe('load_data', 1) == 'ChildPage:1'
    ChildPage.add_extension(Quiet())
    assert len(ChildPage.extensions()) == 2
    assert len(Page.extensions()) == 1


def test_pipe_false():
    page = Page('Page')
    assert page.pipe_false('save') is True
    Page.add_extension(Quiet())
    assert page.pipe_false('save') is True
    Page.add_extension(Loud())
    assert page.pipe_false('save') is False


def test_clear_extensions():
    Page.add_extension(Loud())
    Page.clear_extensions()
    assert Page.extensions() == []


def test_extensions_survive_redeployed_class():
    deploy.run([])
    first = namespaces.import_module('erpia_dinamic.Controller.Dashboard').Dashboard
    first.add_extension(Loud())

    deploy.run([])
    second = namespaces.import_module('erpia_dinamic.Controller.Dashboard').Dashboard
    assert second is not first
    assert second('Dashboard').pipe('load_data', 7) == 'Dashboard:7'

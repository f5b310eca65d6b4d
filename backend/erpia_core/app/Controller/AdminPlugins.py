from erpia_core.template.controller import Controller


class AdminPlugins(Controller):
    """Plugin administration page."""

    def get_page_data(self):
        data = super().get_page_data()
        data['menu'] = 'admin'
        data['title'] = 'plugins'
        data['icon'] = 'fas fa-plug'
        return data

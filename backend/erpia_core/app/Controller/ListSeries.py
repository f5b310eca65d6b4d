from erpia_core.template.controller import Controller


class ListSeries(Controller):
    view_name = 'ListSeries'

    def get_page_data(self):
        data = super().get_page_data()
        data['menu'] = 'admin'
        data['submenu'] = 'accounting'
        data['title'] = 'series'
        data['icon'] = 'fas fa-layer-group'
        return data

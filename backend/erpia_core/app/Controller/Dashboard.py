from erpia_core.template.controller import Controller


class Dashboard(Controller):
    def get_page_data(self):
        data = super().get_page_data()
        data['menu'] = 'reports'
        data['title'] = 'dashboard'
        data['icon'] = 'fas fa-chalkboard-teacher'
        return data

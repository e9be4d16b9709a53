import logging

from django.contrib import messages
from django.contrib.admin.views.decorators import staff_member_required
from django.shortcuts import redirect, render

from .forms import SECTION_FORMS

logger = logging.getLogger(__name__)


@staff_member_required
def settings_view(request):
    """List every credential section and save the one that was posted."""
    forms_by_section = {section: form_cls.from_store() for section, form_cls in SECTION_FORMS.items()}

    if request.method == "POST":
        section = request.POST.get("section", "")
        form_cls = SECTION_FORMS.get(section)
        if form_cls is None:
            messages.error(request, "Unknown settings section.")
            return redirect("appsettings:settings")
        form = form_cls(request.POST, prefix=section)
        if form.is_valid():
            form.save()
            logger.info("Settings section %s updated by %s", section, request.user.get_username())
            messages.success(request, f"{form_cls.title} settings saved.")
            return redirect("appsettings:settings")
        forms_by_section[section] = form

    return render(request, "appsettings/settings.html", {"forms": list(forms_by_section.items())})

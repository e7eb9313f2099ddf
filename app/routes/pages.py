"""Marketing pages: home, about, menu and online ordering."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from app.i18n.messages import get_translator
from app.services.specials_service import get_specials, localize_special
from app.services.testimonials_service import get_testimonials
from app.templating import page_locale, render

router = APIRouter()


@router.get("/{locale}", response_class=HTMLResponse)
async def home_page(request: Request, locale: str = Depends(page_locale)):
    specials, testimonials = await asyncio.gather(get_specials(limit=3), get_testimonials(limit=4))
    fallback_name = get_translator(locale, "Specials").get("menuItemFallback")
    localized = [localize_special(special, locale, fallback_name=fallback_name) for special in specials]
    return render(
        request,
        "home.html",
        locale,
        specials=[item for item in localized if item is not None],
        testimonials=testimonials,
    )


@router.get("/{locale}/about", response_class=HTMLResponse)
async def about_page(request: Request, locale: str = Depends(page_locale)):
    return render(request, "about.html", locale)


@router.get("/{locale}/menu", response_class=HTMLResponse)
async def menu_page(request: Request, locale: str = Depends(page_locale)):
    return render(request, "menu.html", locale)


@router.get("/{locale}/order-online", response_class=HTMLResponse)
async def order_online_page(request: Request, locale: str = Depends(page_locale)):
    return render(request, "order_online.html", locale)

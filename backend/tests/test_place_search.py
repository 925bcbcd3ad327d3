import asyncio

from fakes import candidate
from models.location_schema import LocationInput
from models.place_schema import PanelState, PlaceDetails
from services.place_search import (
    AsyncioScheduler,
    Debouncer,
    PlaceSearchController,
    merge_place_details,
    tags_for_types,
)
from services.places_service import PlacesError


def settle(scheduler, seconds=0.5):
    scheduler.advance(seconds)
    asyncio.run(scheduler.run_spawned())


def test_address_is_recorded_before_any_search(controller, places):
    controller.on_address_text_changed("Pho Th")

    assert controller.form.address == "Pho Th"
    assert controller.search_pending
    assert places.calls == []


def test_burst_of_keystrokes_issues_one_search_with_last_text(controller, places, scheduler):
    for text in ["c", "ca", "caf", "cafe"]:
        controller.on_address_text_changed(text)
        scheduler.advance(0.1)
    assert places.calls == []

    settle(scheduler)

    assert [call.text for call in places.calls] == ["cafe"]


def test_pause_between_bursts_issues_one_search_per_burst(controller, places, scheduler):
    controller.on_address_text_changed("bun")
    settle(scheduler)
    controller.on_address_text_changed("bun c")
    controller.on_address_text_changed("bun cha")
    settle(scheduler)

    assert [call.text for call in places.calls] == ["bun", "bun cha"]


def test_search_is_biased_to_form_center(controller, places, scheduler):
    controller.form.latitude, controller.form.longitude = 10.77, 106.7
    controller.on_address_text_changed("banh mi")
    settle(scheduler)

    call = places.calls[0]
    assert (call.center.lat, call.center.lng) == (10.77, 106.7)
    assert call.radius_m == 50_000
    assert call.types == ["establishment"]


def test_late_response_from_superseded_request_is_discarded(controller, places):
    first = [candidate("old-1")]
    second = [candidate("new-1"), candidate("new-2")]
    places.predictions = {"pho": first, "pho bo": second}

    async def scenario():
        gate_a = places.gate("pho")
        gate_b = places.gate("pho bo")
        task_a = asyncio.create_task(controller.search("pho"))
        await asyncio.sleep(0)
        task_b = asyncio.create_task(controller.search("pho bo"))
        await asyncio.sleep(0)

        gate_b.set()
        await task_b
        assert controller.candidates == second

        gate_a.set()
        await task_a

    asyncio.run(scenario())

    assert controller.candidates == second
    assert controller.panel == PanelState.RESULTS


def test_loading_indicator_belongs_to_latest_request(controller, places):
    places.predictions = {"pho": [candidate("old-1")], "pho bo": [candidate("new-1")]}

    async def scenario():
        gate_a = places.gate("pho")
        gate_b = places.gate("pho bo")
        task_a = asyncio.create_task(controller.search("pho"))
        await asyncio.sleep(0)
        task_b = asyncio.create_task(controller.search("pho bo"))
        await asyncio.sleep(0)

        gate_a.set()
        await task_a
        assert controller.loading
        assert controller.panel == PanelState.LOADING
        assert controller.candidates == []

        gate_b.set()
        await task_b

    asyncio.run(scenario())

    assert not controller.loading
    assert [c.place_id for c in controller.candidates] == ["new-1"]


def test_blank_text_clears_candidates_without_calling_provider(controller, places, scheduler):
    places.predictions = {"cafe": [candidate("c-1")]}
    controller.on_address_text_changed("cafe")
    settle(scheduler)
    assert len(controller.candidates) == 1

    controller.on_address_text_changed("   ")
    settle(scheduler)

    assert controller.candidates == []
    assert [call.text for call in places.calls] == ["cafe"]


def test_blank_text_invalidates_in_flight_search(controller, places):
    places.predictions = {"cafe": [candidate("c-1")]}

    async def scenario():
        gate = places.gate("cafe")
        pending = asyncio.create_task(controller.search("cafe"))
        await asyncio.sleep(0)
        await controller.search("")
        gate.set()
        await pending

    asyncio.run(scenario())

    assert controller.candidates == []
    assert not controller.loading
    assert len(places.calls) == 1


def test_provider_failure_degrades_to_empty_results(controller, places, scheduler):
    places.predictions = {"cafe": [candidate("c-1")]}
    controller.on_address_text_changed("cafe")
    settle(scheduler)

    places.error = PlacesError("OVER_QUERY_LIMIT")
    controller.on_address_text_changed("cafe x")
    settle(scheduler)

    assert controller.candidates == []
    assert controller.panel == PanelState.EMPTY


def test_panel_state_machine(controller, places, scheduler):
    places.predictions = {"bia": [candidate("b-1")]}
    assert controller.panel == PanelState.HIDDEN

    async def in_flight():
        gate = places.gate("bia")
        task = asyncio.create_task(controller.search("bia"))
        await asyncio.sleep(0)
        assert controller.panel == PanelState.LOADING
        gate.set()
        await task

    asyncio.run(in_flight())
    assert controller.panel == PanelState.RESULTS

    controller.dismiss()
    assert controller.panel == PanelState.HIDDEN

    controller.focus()
    assert controller.panel == PanelState.RESULTS

    places.gates.clear()
    controller.on_address_text_changed("zzzz")
    settle(scheduler)
    assert controller.panel == PanelState.EMPTY


def test_selecting_candidate_merges_details_and_hides_panel(controller, places, scheduler):
    places.predictions = {"pho thin": [candidate("p-1", "Pho Thin")]}
    places.details_by_id["p-1"] = PlaceDetails(
        place_id="p-1",
        name="Pho Thin",
        formatted_address="13 Lo Duc, Hai Ba Trung, Hanoi",
        latitude=21.0175,
        longitude=105.8556,
        types=["restaurant", "food", "point_of_interest"],
        rating=4.4,
    )
    controller.on_address_text_changed("pho thin")
    settle(scheduler)

    resolved = asyncio.run(controller.on_candidate_selected("p-1"))

    assert resolved
    form = controller.form
    assert form.name == "Pho Thin"
    assert form.address == "13 Lo Duc, Hai Ba Trung, Hanoi"
    assert (form.latitude, form.longitude) == (21.0175, 105.8556)
    assert form.rating == 4
    assert form.tags == ["Restaurant"]
    assert controller.panel == PanelState.HIDDEN
    assert controller.candidates == []


def test_selection_only_appends_to_existing_notes(controller, places):
    controller.form.notes = "Go early, queue by 7am"
    places.details_by_id["p-2"] = PlaceDetails(
        place_id="p-2", phone="+84 24 3821 2709", website="https://phothin.example"
    )

    asyncio.run(controller.on_candidate_selected("p-2"))

    assert controller.form.notes == (
        "Go early, queue by 7am\nPhone: +84 24 3821 2709\nWebsite: https://phothin.example"
    )


def test_selection_unions_tags_without_duplicates(controller, places):
    controller.form.tags = ["Coffee", "Restaurant"]
    places.details_by_id["p-3"] = PlaceDetails(place_id="p-3", types=["restaurant", "bar", "cafe"])

    asyncio.run(controller.on_candidate_selected("p-3"))

    assert controller.form.tags == ["Coffee", "Restaurant", "Bar", "Cafe"]


def test_selection_keeps_values_provider_did_not_supply(controller, places):
    controller.form.name = "My spot"
    controller.form.latitude, controller.form.longitude = 21.03, 105.85
    places.details_by_id["p-4"] = PlaceDetails(place_id="p-4", formatted_address="1 Hang Bac")

    asyncio.run(controller.on_candidate_selected("p-4"))

    assert controller.form.name == "My spot"
    assert controller.form.address == "1 Hang Bac"
    assert (controller.form.latitude, controller.form.longitude) == (21.03, 105.85)
    assert controller.form.rating == 5


def test_late_details_from_earlier_selection_do_not_overwrite(controller, places):
    places.details_by_id["first"] = PlaceDetails(
        place_id="first", name="Pho Thin", formatted_address="13 Lo Duc", latitude=21.0175, longitude=105.8556
    )
    places.details_by_id["second"] = PlaceDetails(
        place_id="second", name="Bun Cha Huong Lien", formatted_address="24 Le Van Huu",
        latitude=21.0181, longitude=105.8525,
    )

    async def scenario():
        slow = places.gate("first")
        first = asyncio.create_task(controller.on_candidate_selected("first"))
        await asyncio.sleep(0)
        assert await controller.on_candidate_selected("second")
        slow.set()
        return await first

    first_merged = asyncio.run(scenario())

    assert not first_merged
    assert controller.form.name == "Bun Cha Huong Lien"
    assert controller.form.address == "24 Le Van Huu"
    assert (controller.form.latitude, controller.form.longitude) == (21.0181, 105.8525)


def test_user_rating_wins_over_provider_rating(controller, places):
    controller.set_rating(2)
    places.details_by_id["p-5"] = PlaceDetails(place_id="p-5", rating=4.8)

    asyncio.run(controller.on_candidate_selected("p-5"))

    assert controller.form.rating == 2


def test_failed_detail_lookup_leaves_form_untouched(controller, places):
    controller.form.name = "Draft"
    before = controller.form.model_copy(deep=True)

    resolved = asyncio.run(controller.on_candidate_selected("missing"))

    assert not resolved
    assert controller.form == before
    assert controller.panel == PanelState.HIDDEN


def test_snapshots_are_published_on_every_change(places, scheduler):
    snapshots = []
    ctl = PlaceSearchController(
        places, scheduler, LocationInput.blank(21.0, 105.8), on_change=snapshots.append
    )
    places.predictions = {"tra": [candidate("t-1")]}

    ctl.on_address_text_changed("tra")
    settle(scheduler)

    assert [s.panel for s in snapshots] == [PanelState.HIDDEN, PanelState.LOADING, PanelState.RESULTS]
    assert snapshots[0].form.address == "tra"


def test_asyncio_scheduler_debounces_in_real_time(places):
    async def scenario():
        scheduler = AsyncioScheduler()
        ctl = PlaceSearchController(
            places, scheduler, LocationInput.blank(21.0, 105.8), debounce_seconds=0.02
        )
        ctl.on_address_text_changed("b")
        ctl.on_address_text_changed("bu")
        ctl.on_address_text_changed("bun")
        await asyncio.sleep(0.15)
        await scheduler.aclose()

    asyncio.run(scenario())

    assert [call.text for call in places.calls] == ["bun"]


def test_debouncer_rearm_cancels_previous(scheduler):
    fired = []
    debouncer = Debouncer(scheduler, 0.3)
    debouncer.arm(lambda: fired.append("first"))
    scheduler.advance(0.2)
    debouncer.arm(lambda: fired.append("second"))
    scheduler.advance(0.2)
    assert fired == []
    scheduler.advance(0.2)
    assert fired == ["second"]
    assert not debouncer.pending


def test_type_mapping_drops_unknown_types():
    assert tags_for_types(["food", "restaurant", "lodging", "bakery"]) == ["Restaurant", "Bakery"]


def test_provider_rating_is_clamped_into_range():
    form = LocationInput.blank(0.0, 0.0)
    merge_place_details(form, PlaceDetails(place_id="x", rating=0.3))
    assert form.rating == 1

"""GraphQL query strings for FFLogs API v2.

Report queries come in plain/translated pairs. The translated variant
passes ``translate: $translate`` to ``report``; some API deployments
reject that argument, in which case the plain query is used instead.
"""

_FIGHT_FIELDS = """
            code
            fights {
                id
                encounterID
                name
                kill
                startTime
                endTime
                difficulty
            }
"""

REPORT_FIGHTS = """
query ReportFights($code: String!) {
    reportData {
        report(code: $code) {
FIGHT_FIELDS
        }
    }
}
""".replace("FIGHT_FIELDS", _FIGHT_FIELDS)

REPORT_FIGHTS_TRANSLATED = """
query ReportFightsTranslated($code: String!, $translate: Boolean) {
    reportData {
        report(code: $code, translate: $translate) {
FIGHT_FIELDS
        }
    }
}
""".replace("FIGHT_FIELDS", _FIGHT_FIELDS)

_MASTER_DATA_FIELDS = """
            masterData {
                actors {
                    id
                    gameID
                    name
                    type
                    subType
                    petOwner
                }
                abilities {
                    gameID
                    name
                }
            }
"""

REPORT_MASTER_DATA = """
query ReportMasterData($code: String!) {
    reportData {
        report(code: $code) {
MASTER_DATA_FIELDS
        }
    }
}
""".replace("MASTER_DATA_FIELDS", _MASTER_DATA_FIELDS)

REPORT_MASTER_DATA_TRANSLATED = """
query ReportMasterDataTranslated($code: String!, $translate: Boolean) {
    reportData {
        report(code: $code, translate: $translate) {
MASTER_DATA_FIELDS
        }
    }
}
""".replace("MASTER_DATA_FIELDS", _MASTER_DATA_FIELDS)

_EVENTS_FIELDS = """
            events(
                fightIDs: $fightIDs
                startTime: $startTime
                endTime: $endTime
                limit: $limit
                dataType: $dataType
            ) {
                data
                nextPageTimestamp
            }
"""

REPORT_EVENTS = """
query ReportEvents($code: String!, $fightIDs: [Int!], $startTime: Float,
                   $endTime: Float, $limit: Int, $dataType: EventDataType) {
    reportData {
        report(code: $code) {
EVENTS_FIELDS
        }
    }
}
""".replace("EVENTS_FIELDS", _EVENTS_FIELDS)

REPORT_EVENTS_TRANSLATED = """
query ReportEventsTranslated($code: String!, $fightIDs: [Int!], $startTime: Float,
                             $endTime: Float, $limit: Int, $dataType: EventDataType,
                             $translate: Boolean) {
    reportData {
        report(code: $code, translate: $translate) {
EVENTS_FIELDS
        }
    }
}
""".replace("EVENTS_FIELDS", _EVENTS_FIELDS)

CHARACTER_RANKINGS = """
query CharacterRankings($encounterID: Int!, $metric: CharacterRankingMetricType!,
                        $difficulty: Int, $size: Int, $partition: Int, $page: Int) {
    worldData {
        encounter(id: $encounterID) {
            characterRankings(
                metric: $metric,
                difficulty: $difficulty,
                size: $size,
                partition: $partition,
                page: $page
            )
        }
    }
}
"""

CHARACTER_RANKINGS_METRIC_ONLY = """
query CharacterRankingsMetricOnly($encounterID: Int!,
                                  $metric: CharacterRankingMetricType!, $page: Int) {
    worldData {
        encounter(id: $encounterID) {
            characterRankings(metric: $metric, page: $page)
        }
    }
}
"""

WORLD_ZONES = """
query WorldZones {
    worldData {
        zones {
            id
            name
            encounters {
                id
                name
            }
        }
    }
}
"""
